import logging
from typing import Union

from kilter.protocol import Accept, ReplyCode
from kilter.service import Runner, Session

from src.policy import Decision
from src.session import NO_QUEUE_ID, FilterConfig, FilterSession


logger = logging.getLogger(__name__)


QUEUE_ID_MACRO = "i"
AUTH_MACRO = "{auth_authen}"


def get_queue_id(session: Session) -> str:
    return session.macros.get(QUEUE_ID_MACRO) or NO_QUEUE_ID


def is_authenticated(session: Session) -> bool:
    return bool(session.macros.get(AUTH_MACRO))


def to_response(decision: Decision) -> Union[Accept, ReplyCode]:
    if decision.action == "reject":
        return ReplyCode(decision.code, decision.text)

    return Accept()


async def process(session: Session, config: FilterConfig) -> Union[Accept, ReplyCode]:
    """
    The milter processor for dmarcator.

    The envelope sender is awaited first so that the MAIL stage macros are
    known: a client which authenticated with SASL is accepted without
    looking any further. Otherwise every header is handed to a
    FilterSession, which decides once the headers are complete.
    """
    await session.envelope_from()

    filter_session = FilterSession(config, get_queue_id(session))
    filter_session.on_mail_from(is_authenticated(session))

    if filter_session.authenticated:
        return to_response(filter_session.on_headers_end())

    async with session.headers as headers:
        async for header in headers:
            value = bytes(header.value).decode("utf-8", errors="replace").lstrip()
            filter_session.queue_id = get_queue_id(session)
            filter_session.on_header(header.name, value)

    return to_response(filter_session.on_headers_end())


def build_runner(config: FilterConfig) -> Runner:
    async def handle(session: Session) -> Union[Accept, ReplyCode]:
        return await process(session, config)

    return Runner(handle)
