import pytest

from i18n_ledger.errors import ErrorCode, InvalidLineError
from i18n_ledger.full_key import compose, decompose
from i18n_ledger.line_codec import (
    APPROVED_LINE,
    COMMENT_LINE,
    DELETE_KEY_LINE,
    NEW_LINE_SYMBOL,
    NOT_APPROVED_LINE,
    comment_line,
    decode,
    delete_line,
    is_update_line,
    safe_value,
    to_update_line,
    unsafe_value,
    value_line
)


class TestEncoding:

    def test_value_lines(self):
        assert value_line(True, 'hello', 'Hi') == '+hello=Hi'
        assert value_line(False, 'hello', 'Hi') == '-hello=Hi'
        assert value_line(False, 'hello', None) == '-hello='

    def test_comment_and_delete_lines(self):
        assert comment_line('hello', 'Greeting on the start page') == '#hello=Greeting on the start page'
        assert delete_line('hello') == '!hello'

    def test_new_lines_are_escaped(self):
        line = value_line(True, 'multi', 'first\nsecond\r\nthird')
        assert '\n' not in line and '\r' not in line
        assert line == f'+multi=first{NEW_LINE_SYMBOL}second{NEW_LINE_SYMBOL}third'

    def test_safe_value_trims(self):
        assert safe_value('  Hi \n') == 'Hi'
        assert safe_value(None) == ''

    def test_untrimmed_baseline_line(self):
        assert value_line(False, 'k', ' padded ', trim=False) == '-k= padded '
        assert comment_line('k', 'a\nb', trim=False) == f'#k=a{NEW_LINE_SYMBOL}b'

    def test_update_prefix(self):
        line = to_update_line('-hello=Salut')
        assert line == '>-hello=Salut'
        assert is_update_line(line)
        assert not is_update_line('-hello=Salut')


class TestDecoding:

    @pytest.mark.parametrize('value', [
        'line one\nline two',
        'a\n\nb',
        'trailing words\nand more words',
    ])
    def test_new_lines_survive_a_round_trip(self, value):
        parsed = decode(value_line(True, 'k', value))
        assert parsed.value == value

    def test_comment_round_trip(self):
        parsed = decode(comment_line('k', 'note\nsecond line'))
        assert parsed.type == COMMENT_LINE
        assert parsed.is_comment
        assert parsed.value == 'note\nsecond line'

    def test_value_types(self):
        approved = decode('+hello=Hi')
        assert approved.type == APPROVED_LINE
        assert approved.approved
        assert (approved.key, approved.value) == ('hello', 'Hi')

        not_approved = decode('-hello=Hi')
        assert not_approved.type == NOT_APPROVED_LINE
        assert not not_approved.approved

    def test_value_may_contain_separator(self):
        parsed = decode('+formula=a=b')
        assert parsed.key == 'formula'
        assert parsed.value == 'a=b'

    def test_delete_line(self):
        parsed = decode('!hello')
        assert parsed.type == DELETE_KEY_LINE
        assert parsed.is_delete
        assert parsed.key == 'hello'

    def test_update_line_is_decoded_after_prefix(self):
        parsed = decode('>-hello=Salut', 1)
        assert (parsed.key, parsed.value, parsed.approved) == ('hello', 'Salut', False)

    def test_escape_symbol_is_unescaped(self):
        assert unsafe_value(f'a{NEW_LINE_SYMBOL}b') == 'a\nb'

    @pytest.mark.parametrize('line', [
        '',
        'hello=Hi',
        '*hello=Hi',
        '+hello',
        '#comment without separator',
        '!',
    ])
    def test_malformed_lines(self, line):
        with pytest.raises(InvalidLineError) as exc_info:
            decode(line)
        assert exc_info.value.code == ErrorCode.INVALID_LINE
        assert exc_info.value.state_error

    def test_prefix_only_update_line(self):
        with pytest.raises(InvalidLineError):
            decode('>', 1)


class TestFullKey:

    def test_compose_and_decompose(self):
        full_key = compose('app.fr.i18n', 'hello')
        assert full_key == 'app.fr.i18n/hello'
        assert decompose(full_key) == ('app.fr.i18n', 'hello')

    def test_key_with_slash(self):
        assert decompose(compose('app.i18n', 'menu/file/open')) == ('app.i18n', 'menu/file/open')
