import pytest

from afkmover.core.clientinfo import parse_idle_time_ms
from afkmover.core.errors import ClientInfoError


def test_reads_idle_time():
    assert parse_idle_time_ms({"cid": "1", "client_idle_time": "123456"}) == 123456
    assert parse_idle_time_ms({"client_idle_time": "0"}) == 0


@pytest.mark.parametrize("info", [
    {},
    {"client_idle_time": ""},
    {"client_idle_time": "12s"},
    {"client_idle_time": "-5"},
])
def test_bad_idle_time_is_a_parse_error(info):
    with pytest.raises(ClientInfoError):
        parse_idle_time_ms(info)
