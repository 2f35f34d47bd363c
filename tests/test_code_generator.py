from collections import Counter

import pytest

from lnkz.core.exceptions import InvalidInputError
from lnkz.services.code_generator import ALPHABET, CodeGenerator


@pytest.fixture
def generator():
    return CodeGenerator(length=6)


class TestIsValidFormat:

    @pytest.mark.parametrize("code", ["abc123", "000000", "zzzzzz", "a1b2c3"])
    def test_accepts_six_lowercase_alphanumerics(self, generator, code):
        assert generator.is_valid_format(code)

    @pytest.mark.parametrize(
        "code",
        ["", "abc12", "abc1234", "ABC123", "abc-12", "abc 12", "abc12\n", "ábc123", None, 123456],
    )
    def test_rejects_everything_else(self, generator, code):
        assert not generator.is_valid_format(code)


class TestGenerate:

    def test_returns_requested_code_unchanged(self, generator):
        assert generator.generate("mycode") == "mycode"

    @pytest.mark.parametrize("code", ["short", "UPPER1", "toolong1", "ab_123"])
    def test_invalid_requested_code_raises(self, generator, code):
        with pytest.raises(InvalidInputError) as exc_info:
            generator.generate(code)
        assert "6 lowercase letters or digits" in exc_info.value.public_message

    def test_random_codes_have_correct_shape(self, generator):
        for _ in range(200):
            code = generator.generate()
            assert len(code) == 6
            assert generator.is_valid_format(code)

    def test_random_codes_differ(self, generator):
        codes = {generator.generate() for _ in range(100)}
        assert len(codes) > 95

    def test_biased_bytes_are_rejected(self):
        # 252..255 would map to a, b, c, d under a plain modulo
        feed = iter([bytes([252, 253, 254, 255, 0, 1]), bytes([2, 3, 4, 5, 35, 36])])
        generator = CodeGenerator(length=6, token_bytes=lambda n: next(feed))

        assert generator.random_code() == "ab" + "cdef"

    def test_byte_mapping_covers_alphabet(self):
        feed = iter([bytes(range(36)) + bytes(range(36))])
        generator = CodeGenerator(length=36, token_bytes=lambda n: next(feed))
        assert generator.random_code() == ALPHABET

    def test_distribution_is_roughly_uniform(self, generator):
        counts = Counter("".join(generator.random_code() for _ in range(3000)))
        expected = 3000 * 6 / len(ALPHABET)
        assert set(counts) == set(ALPHABET)
        assert all(0.7 * expected < n < 1.3 * expected for n in counts.values())
