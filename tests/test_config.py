"""
Settings tests.
"""

import pytest

from dbsaas.config import Settings


class TestLogLevel:

    @pytest.mark.parametrize("level,expected", [("info", "INFO"), ("WARNING", "WARNING")])
    def test_follows_log_level(self, level, expected):
        assert Settings(LOG_LEVEL=level, DEBUG=False).log_level == expected

    def test_debug_overrides_log_level(self):
        assert Settings(LOG_LEVEL="WARNING", DEBUG=True).log_level == "DEBUG"
