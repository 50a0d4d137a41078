"""
Property-based tests for the Record Matcher.

Uses Hypothesis to check the per-kind comparison rules against generated
snapshots.
"""

from io import StringIO

from hypothesis import given, settings, assume
from hypothesis import strategies as st

from dns_monitor.audit_logger import AuditLogger
from dns_monitor.enums import LogLevel, RecordKind
from dns_monitor.matcher import RecordMatcher, mx_display, normalize_whitespace
from dns_monitor.models import DomainSnapshot, ExpectedRecord, MxRecord


# Strategies for generating test data


@st.composite
def hostname_strategy(draw) -> str:
    labels = draw(
        st.lists(
            st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=12),
            min_size=1,
            max_size=3,
        )
    )
    tld = draw(st.sampled_from(["com", "net", "org", "de"]))
    return ".".join(labels + [tld])


@st.composite
def ipv4_strategy(draw) -> str:
    octets = draw(st.lists(st.integers(min_value=0, max_value=255), min_size=4, max_size=4))
    return ".".join(str(o) for o in octets)


@st.composite
def mx_strategy(draw) -> MxRecord:
    return MxRecord(
        exchange=draw(hostname_strategy()),
        priority=draw(st.integers(min_value=0, max_value=65535)),
    )


txt_fragment_strategy = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyz0123456789=-_.:",
    min_size=1,
    max_size=40,
)


def expected(record_type: str, record_value: str) -> ExpectedRecord:
    return ExpectedRecord(id=1, domain_id=1, record_type=record_type, record_value=record_value)


class TestExactMembershipProperty:
    """
    Property 1: A, AAAA, CNAME and NS match by exact membership.
    """

    @given(addresses=st.lists(ipv4_strategy(), min_size=1, max_size=5), data=st.data())
    @settings(max_examples=100)
    def test_a_record_present_matches(self, addresses: list[str], data) -> None:
        """*For any* A record present in the snapshot, the expectation matches."""
        value = data.draw(st.sampled_from(addresses))
        snapshot = DomainSnapshot(a=addresses)

        comparison = RecordMatcher().match(expected("A", value), snapshot)

        assert comparison.matched is True
        assert comparison.supported is True
        assert comparison.actual_values == addresses

    @given(addresses=st.lists(ipv4_strategy(), max_size=5), value=ipv4_strategy())
    @settings(max_examples=100)
    def test_a_record_absent_does_not_match(self, addresses: list[str], value: str) -> None:
        """*For any* A value not in the snapshot, the expectation fails."""
        assume(value not in addresses)
        snapshot = DomainSnapshot(a=addresses)

        comparison = RecordMatcher().match(expected("A", value), snapshot)

        assert comparison.matched is False
        assert comparison.actual_values == addresses

    @given(host=hostname_strategy())
    @settings(max_examples=50)
    def test_membership_is_case_sensitive(self, host: str) -> None:
        """Hostname comparison does not fold case."""
        assume(host.upper() != host)
        snapshot = DomainSnapshot(ns=[host], cname=[host])

        matcher = RecordMatcher()

        assert matcher.match(expected("NS", host), snapshot).matched is True
        assert matcher.match(expected("NS", host.upper()), snapshot).matched is False
        assert matcher.match(expected("CNAME", host.upper()), snapshot).matched is False

    def test_lowercase_record_type_is_accepted(self) -> None:
        snapshot = DomainSnapshot(aaaa=["2001:db8::1"])

        comparison = RecordMatcher().match(expected("aaaa", "2001:db8::1"), snapshot)

        assert comparison.record_type == "AAAA"
        assert comparison.matched is True

    def test_failed_a_expectation_reports_actual_values(self) -> None:
        snapshot = DomainSnapshot(a=["93.184.216.35"])

        comparison = RecordMatcher().match(expected("A", "93.184.216.34"), snapshot)

        assert comparison.matched is False
        assert comparison.actual_values == ["93.184.216.35"]


class TestMxMatchingProperty:
    """
    Property 2: MX matches the bare exchange or the display form.
    """

    @given(records=st.lists(mx_strategy(), min_size=1, max_size=4), data=st.data())
    @settings(max_examples=100)
    def test_exchange_and_display_forms_match(self, records: list[MxRecord], data) -> None:
        """*For any* MX in the snapshot, both accepted forms match."""
        mx = data.draw(st.sampled_from(records))
        snapshot = DomainSnapshot(mx=records)
        matcher = RecordMatcher()

        assert matcher.match(expected("MX", mx.exchange), snapshot).matched is True
        assert matcher.match(expected("MX", mx_display(mx)), snapshot).matched is True

    @given(mx=mx_strategy())
    @settings(max_examples=50)
    def test_wrong_priority_does_not_match(self, mx: MxRecord) -> None:
        snapshot = DomainSnapshot(mx=[mx])
        wrong = f"{mx.exchange} (Priority: {mx.priority + 1})"

        assert RecordMatcher().match(expected("MX", wrong), snapshot).matched is False

    def test_display_format(self) -> None:
        mx = MxRecord(exchange="mail.example.com", priority=10)

        assert mx_display(mx) == "mail.example.com (Priority: 10)"

    def test_mx_actual_values_are_structured(self) -> None:
        snapshot = DomainSnapshot(mx=[MxRecord(exchange="mx1.example.com", priority=5)])

        comparison = RecordMatcher().match(expected("MX", "other.example.com"), snapshot)

        assert comparison.actual_values == [{"exchange": "mx1.example.com", "priority": 5}]


class TestTxtMatchingProperty:
    """
    Property 3: TXT compares whitespace-normalized fragments.
    """

    @given(
        words=st.lists(txt_fragment_strategy, min_size=1, max_size=5),
        gaps=st.lists(st.sampled_from([" ", "  ", "\t", " \n "]), min_size=5, max_size=5),
    )
    @settings(max_examples=100)
    def test_whitespace_variations_match(self, words: list[str], gaps: list[str]) -> None:
        """*For any* spacing of the same words, the TXT expectation matches."""
        stored = " ".join(words)
        spaced = "".join(word + gaps[i] for i, word in enumerate(words))
        snapshot = DomainSnapshot(txt=[[stored]])

        comparison = RecordMatcher().match(expected("TXT", "  " + spaced), snapshot)

        assert comparison.matched is True

    @given(records=st.lists(st.lists(txt_fragment_strategy, min_size=1, max_size=3), min_size=1, max_size=4), data=st.data())
    @settings(max_examples=100)
    def test_any_fragment_of_any_record_matches(self, records: list[list[str]], data) -> None:
        record = data.draw(st.sampled_from(records))
        fragment = data.draw(st.sampled_from(record))
        snapshot = DomainSnapshot(txt=records)

        assert RecordMatcher().match(expected("TXT", fragment), snapshot).matched is True

    def test_fragments_are_not_joined(self) -> None:
        """A value split across two character-strings does not match the joined text."""
        snapshot = DomainSnapshot(txt=[["v=spf1 include:a.example", " -all"]])

        comparison = RecordMatcher().match(expected("TXT", "v=spf1 include:a.example -all"), snapshot)

        assert comparison.matched is False

    def test_normalize_whitespace(self) -> None:
        assert normalize_whitespace("  a \t b\n\nc  ") == "a b c"


class TestUnsupportedKindProperty:
    """
    Property 4: Kinds without a rule are reported unsupported and unmatched.
    """

    @given(kind=st.sampled_from([RecordKind.SOA, RecordKind.SRV, RecordKind.PTR, RecordKind.SPF, RecordKind.DKIM, RecordKind.DMARC]))
    @settings(max_examples=30)
    def test_uncomparable_kinds_never_match(self, kind: RecordKind) -> None:
        snapshot = DomainSnapshot(spf=["v=spf1 -all"], dmarc=["v=DMARC1; p=none"], ptr=["host.example.com"])
        output = StringIO()
        logger = AuditLogger(output_format="json", output_stream=output)

        comparison = RecordMatcher(logger=logger).match(expected(kind.value, "v=spf1 -all"), snapshot)

        assert comparison.matched is False
        assert comparison.supported is False
        assert comparison.actual_values == []
        assert any(e.level == LogLevel.WARN for e in logger.entries)

    def test_unknown_kind_is_unsupported(self) -> None:
        comparison = RecordMatcher().match(expected("LOC", "anything"), DomainSnapshot())

        assert comparison.supported is False
        assert comparison.matched is False
        assert comparison.record_type == "LOC"

    def test_is_supported(self) -> None:
        matcher = RecordMatcher()

        assert matcher.is_supported("mx") is True
        assert matcher.is_supported("SPF") is False
        assert matcher.is_supported("BOGUS") is False
