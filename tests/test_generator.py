"""
Test synthetic error generation
"""

import random
import pytest

from sitewatch.core.catalogs import DEFAULT_MESSAGES, DEFAULT_SITES
from sitewatch.core.errors import EmptyCatalog
from sitewatch.core.generator import EventGenerator, format_error_code

from conftest import BASE_TIME_MS, FixedClock


class StubRandom(random.Random):
    """Random source returning fixed code numbers"""

    def __init__(self, codes):
        super().__init__(0)
        self._codes = list(codes)

    def randrange(self, *args, **kwargs):
        return self._codes.pop(0)


class TestEventGenerator:
    """Test EventGenerator"""

    def test_record_fields(self, generator):
        """Test generated records draw from the catalogs"""
        record = generator.next()

        assert record.id is None
        assert record.error_code.startswith("ERR_")
        assert len(record.error_code) == 7
        assert record.title in DEFAULT_MESSAGES
        assert record.site in DEFAULT_SITES
        assert record.severity == "Error"
        assert record.is_hidden is False
        assert record.timestamp == BASE_TIME_MS

    def test_code_range_bounds(self):
        """Test codes span ERR_000 through ERR_998"""
        gen = EventGenerator(rng=StubRandom([0, 998, 42]))

        assert gen.next().error_code == "ERR_000"
        assert gen.next().error_code == "ERR_998"
        assert gen.next().error_code == "ERR_042"

    def test_codes_stay_in_range(self):
        """Test many draws never leave the code space"""
        gen = EventGenerator(rng=random.Random(7))
        numbers = {int(gen.next().error_code[4:]) for _ in range(2000)}
        assert min(numbers) >= 0
        assert max(numbers) <= 998

    def test_seeded_generators_agree(self):
        """Test the same seed and clock reproduce the same records"""
        clock = FixedClock()
        a = EventGenerator(rng=random.Random(99), clock=clock)
        b = EventGenerator(rng=random.Random(99), clock=clock)

        assert [a.next() for _ in range(10)] == [b.next() for _ in range(10)]

    def test_custom_catalogs(self):
        """Test single-entry catalogs are always chosen"""
        gen = EventGenerator(messages=["only message"], sites=["only site"], severity="Critical")
        record = gen.next()

        assert record.title == "only message"
        assert record.site == "only site"
        assert record.severity == "Critical"

    def test_timestamp_follows_clock(self):
        """Test timestamps come from the injected clock"""
        clock = FixedClock()
        gen = EventGenerator(clock=clock)
        clock.advance(5000)

        assert gen.next().timestamp == BASE_TIME_MS + 5000

    @pytest.mark.parametrize("messages,sites", [([], ["Seoul HQ"]), (["CPU usage above 95%"], [])])
    def test_empty_catalog_rejected(self, messages, sites):
        """Test an empty catalog cannot build a generator"""
        with pytest.raises(EmptyCatalog):
            EventGenerator(messages=messages, sites=sites)


def test_format_error_code():
    assert format_error_code(7) == "ERR_007"
    assert format_error_code(123) == "ERR_123"
