import pytest
from pydantic import ValidationError

from coursegate.config import Config

REQUIRED = {
    "database_url": "mongodb://localhost:27017/coursegate_test",
    "host": "127.0.0.1",
    "port": 3100,
    "debug": False,
    "secret_key": "test-secret",
}


class TestSchedulerSettings:
    def test_defaults(self):
        config = Config(**REQUIRED)
        assert (config.expiry_sweep_hour, config.expiry_warning_hour) == (2, 9)
        assert config.session_cleanup_interval_minutes == 15

    @pytest.mark.parametrize("field", ["expiry_sweep_hour", "expiry_warning_hour"])
    @pytest.mark.parametrize("hour", [-1, 24])
    def test_hour_out_of_range(self, field, hour):
        with pytest.raises(ValidationError):
            Config(**REQUIRED, **{field: hour})

    def test_cleanup_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            Config(**REQUIRED, session_cleanup_interval_minutes=0)
