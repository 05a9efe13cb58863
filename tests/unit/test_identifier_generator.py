import itertools
import random
import re
from unittest.mock import MagicMock

from medref.identifiers.generator import (
    APPLICATION_PREFIX,
    ARCHIVE_PREFIX,
    IdentifierGenerator,
)

_ARCHIVE_PATTERN = re.compile(r"^ARC-\d+-\d{4}$")


class TestFormat:
    def test_archive_number_format(self) -> None:
        generator = IdentifierGenerator()
        assert _ARCHIVE_PATTERN.match(generator.generate(ARCHIVE_PREFIX))

    def test_uses_clock_millis(self) -> None:
        generator = IdentifierGenerator(clock=lambda: 1700000000123, rng=random.Random(1))
        number = generator.generate(APPLICATION_PREFIX)
        assert number.startswith("APP-1700000000123-")

    def test_suffix_is_zero_padded(self) -> None:
        rng = MagicMock()
        rng.randint.return_value = 7
        generator = IdentifierGenerator(clock=lambda: 1, rng=rng)

        assert generator.generate("APP") == "APP-1-0007"
        rng.randint.assert_called_once_with(1, 9999)

    def test_largest_suffix(self) -> None:
        rng = MagicMock()
        rng.randint.return_value = 9999
        generator = IdentifierGenerator(clock=lambda: 1, rng=rng)

        assert generator.generate("ARC") == "ARC-1-9999"


class TestUniqueness:
    def test_no_duplicates_across_many_generations(self) -> None:
        ticks = itertools.count(1700000000000)
        generator = IdentifierGenerator(clock=lambda: next(ticks), rng=random.Random(7))

        numbers = [generator.generate(ARCHIVE_PREFIX) for _ in range(10_000)]

        assert len(set(numbers)) == len(numbers)

    def test_suffix_spread_within_one_millisecond(self) -> None:
        generator = IdentifierGenerator(clock=lambda: 1700000000000, rng=random.Random(3))

        numbers = {generator.generate(APPLICATION_PREFIX) for _ in range(100)}

        assert len(numbers) > 90
