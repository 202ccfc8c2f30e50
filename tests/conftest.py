import pytest

from src.policy import DomainPolicy
from src.session import FilterConfig


AUTHSERV_ID = "mail.club1.fr"
REJECT_FMT = "rejected because of DMARC failure for %s overriding policy"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def filter_config() -> FilterConfig:
    return FilterConfig(
        authserv_id=AUTHSERV_ID,
        domains=DomainPolicy(["gmail.com"]),
        reject_fmt=REJECT_FMT,
    )
