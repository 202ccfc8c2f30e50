import logging
from unittest.mock import Mock

import pytest

from src.authresults import ParseError, parse
from src.session import CaptureState, FilterSession


def audit_records(caplog) -> list[str]:
    return [r.getMessage() for r in caplog.records if r.name == "dmarcator.audit"]


class TestFilterSession:
    def test_it_starts_idle(self, filter_config):
        session = FilterSession(filter_config, "4XyZ1")

        assert session.state is CaptureState.IDLE
        assert not session.should_reject

    def test_it_rejects_a_failure_for_a_listed_domain(self, filter_config, caplog):
        caplog.set_level(logging.INFO)
        session = FilterSession(filter_config, "4XyZ1")

        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=gmail.com")
        assert session.should_reject

        decision = session.on_headers_end()

        assert decision.action == "reject"
        assert decision.code == 550
        assert decision.text == "5.7.1 rejected because of DMARC failure for gmail.com overriding policy"
        assert audit_records(caplog) == ['4XyZ1: reject dmarc=fail from=gmail.com addr=""']

    def test_it_keeps_the_case_of_the_claimed_domain(self, filter_config):
        session = FilterSession(filter_config)

        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=GMAIL.com")

        decision = session.on_headers_end()
        assert decision.action == "reject"
        assert "GMAIL.com" in decision.text

    @pytest.mark.parametrize("header", [
        "mail.club1.fr; dmarc=pass header.from=gmail.com",
        "mail.club1.fr; dmarc=fail header.from=example.com",
        "mail.club1.fr; dmarc=none header.from=example.com",
    ])
    def test_it_accepts(self, filter_config, header):
        session = FilterSession(filter_config)

        session.on_header("Authentication-Results", header)

        assert session.on_headers_end().action == "accept"

    def test_it_rejects_none_for_a_listed_domain(self, filter_config):
        session = FilterSession(filter_config)

        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=none header.from=gmail.com")

        assert session.on_headers_end().action == "reject"

    def test_it_accepts_without_authentication_results(self, filter_config, caplog):
        caplog.set_level(logging.INFO)
        session = FilterSession(filter_config, "4XyZ1")

        session.on_header("From", "Alice <alice@gmail.com>")
        session.on_header("Subject", "Hello")

        assert session.on_headers_end().action == "accept"
        assert audit_records(caplog) == ['4XyZ1: accept dmarc=unknown from=unknown addr="Alice <alice@gmail.com>"']

    def test_it_ignores_results_from_other_servers(self, filter_config):
        session = FilterSession(filter_config)

        session.on_header("Authentication-Results", "example.com; dmarc=fail header.from=gmail.com")

        assert session.verdict is None
        assert session.state is CaptureState.IDLE
        assert session.on_headers_end().action == "accept"

    def test_it_uses_our_results_after_foreign_ones(self, filter_config):
        session = FilterSession(filter_config)

        session.on_header("Authentication-Results", "example.com; dmarc=pass header.from=gmail.com")
        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=gmail.com")

        assert session.on_headers_end().action == "reject"

    def test_it_matches_our_identifier_regardless_of_case(self, filter_config):
        session = FilterSession(filter_config)

        session.on_header("authentication-results", "MAIL.club1.fr; dmarc=fail header.from=gmail.com")

        assert session.on_headers_end().action == "reject"

    def test_it_logs_and_skips_malformed_results(self, filter_config, caplog):
        caplog.set_level(logging.INFO)
        session = FilterSession(filter_config, "4XyZ1")

        session.on_header("Authentication-Results", "mail.club1.fr; dmarc header.from=gmail.com")

        assert session.verdict is None
        assert session.state is CaptureState.IDLE

        warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert warnings[0].startswith("4XyZ1: failed to parse header")
        assert "mail.club1.fr; dmarc header.from=gmail.com" in warnings[0]

        assert session.on_headers_end().action == "accept"
        assert audit_records(caplog) == ['4XyZ1: accept dmarc=unknown from=unknown addr=""']

    def test_it_evaluates_results_after_malformed_ones(self, filter_config):
        session = FilterSession(filter_config)

        session.on_header("Authentication-Results", "mail.club1.fr; dmarc header.from=gmail.com")
        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=gmail.com")

        assert session.on_headers_end().action == "reject"

    def test_it_skips_results_without_dmarc(self, filter_config):
        session = FilterSession(filter_config)

        session.on_header("Authentication-Results", "mail.club1.fr; spf=pass smtp.mailfrom=gmail.com")
        assert session.state is CaptureState.IDLE

        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=gmail.com")
        assert session.on_headers_end().action == "reject"

    def test_only_the_first_matching_results_count(self, filter_config):
        session = FilterSession(filter_config)

        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=gmail.com")
        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=pass header.from=gmail.com")

        assert session.verdict.outcome == "fail"
        assert session.on_headers_end().action == "reject"

    def test_the_first_from_header_counts(self, filter_config, caplog):
        caplog.set_level(logging.INFO)
        session = FilterSession(filter_config, "4XyZ1")

        session.on_header("From", "first@example.com")
        session.on_header("FROM", "second@example.com")
        assert session.state is CaptureState.PARTIAL

        session.on_headers_end()
        assert audit_records(caplog) == ['4XyZ1: accept dmarc=unknown from=unknown addr="first@example.com"']

    def test_it_ignores_headers_once_both_are_captured(self, filter_config):
        parser = Mock(side_effect=parse)
        session = FilterSession(filter_config, parser=parser)

        session.on_header("From", "alice@gmail.com")
        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=pass header.from=gmail.com")
        assert session.state is CaptureState.FULL

        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=gmail.com")

        parser.assert_called_once()
        assert session.on_headers_end().action == "accept"
        assert session.state is CaptureState.DECIDED

    def test_it_keeps_malformed_from_headers_in_the_audit(self, filter_config, caplog):
        caplog.set_level(logging.INFO)
        session = FilterSession(filter_config, "4XyZ1")

        session.on_header("From", "=?UTF-42?Q?Broken?= <x@y>")
        session.on_headers_end()

        assert audit_records(caplog) == ['4XyZ1: accept dmarc=unknown from=unknown addr="=?UTF-42?Q?Broken?= <x@y>"']

    def test_it_keeps_the_audit_on_one_line_for_folded_from_headers(self, filter_config, caplog):
        caplog.set_level(logging.INFO)
        session = FilterSession(filter_config, "4XyZ1")

        session.on_header("From", "\"Doe, John\r\n Jr\" <john@gmail.com>")
        session.on_headers_end()

        [line] = audit_records(caplog)
        assert "\n" not in line
        assert "\r" not in line
        assert line == r'4XyZ1: accept dmarc=unknown from=unknown addr="\"Doe, John Jr\" <john@gmail.com>"'

    def test_ending_twice_gives_the_same_decision(self, filter_config, caplog):
        caplog.set_level(logging.INFO)
        session = FilterSession(filter_config, "4XyZ1")
        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=gmail.com")

        first = session.on_headers_end()
        second = session.on_headers_end()

        assert first == second
        assert len(audit_records(caplog)) == 1

    def test_it_does_not_raise_on_parser_errors(self, filter_config):
        parser = Mock(side_effect=ParseError("Expected '='"))
        session = FilterSession(filter_config, parser=parser)

        session.on_header("Authentication-Results", "anything")

        assert session.on_headers_end().action == "accept"


class TestAuthenticatedSender:
    def test_it_accepts_authenticated_senders(self, filter_config, caplog):
        caplog.set_level(logging.INFO)
        session = FilterSession(filter_config, "4XyZ1")

        session.on_mail_from(True)
        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=gmail.com")

        assert session.verdict is None
        assert session.on_headers_end().action == "accept"
        assert audit_records(caplog) == []

    def test_unauthenticated_senders_are_checked(self, filter_config):
        session = FilterSession(filter_config)

        session.on_mail_from(False)
        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=gmail.com")

        assert session.on_headers_end().action == "reject"

    def test_a_late_hint_is_ignored(self, filter_config):
        session = FilterSession(filter_config)

        session.on_header("Authentication-Results", "mail.club1.fr; dmarc=fail header.from=gmail.com")
        session.on_mail_from(True)

        assert not session.authenticated
        assert session.on_headers_end().action == "reject"
