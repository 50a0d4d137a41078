"""
Property-based tests for the Audit Recorder.

Checks the row serialization of each record kind and the two-phase
history write.
"""

import asyncio
import json
import tempfile
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from dns_monitor.audit_recorder import (
    AuditRecorder,
    flatten_snapshot,
    serialize_dkim,
    serialize_mx,
    serialize_soa,
    serialize_srv,
)
from dns_monitor.enums import CheckState, RecordKind
from dns_monitor.models import (
    DkimRecord,
    DomainSnapshot,
    MxRecord,
    SoaRecord,
    SrvRecord,
)
from dns_monitor.record_store import JsonRecordStore


txt_fragment = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789=;- ", min_size=1, max_size=30)


@st.composite
def snapshot_strategy(draw) -> DomainSnapshot:
    host = st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=10).map(lambda s: f"{s}.example.com")
    return DomainSnapshot(
        a=draw(st.lists(st.sampled_from(["192.0.2.1", "192.0.2.2", "198.51.100.7"]), max_size=3)),
        aaaa=draw(st.lists(st.just("2001:db8::1"), max_size=1)),
        cname=draw(st.lists(host, max_size=1)),
        mx=draw(st.lists(st.builds(MxRecord, exchange=host, priority=st.integers(0, 100)), max_size=3)),
        txt=draw(st.lists(st.lists(txt_fragment, min_size=1, max_size=3), max_size=3)),
        ns=draw(st.lists(host, max_size=3)),
        soa=draw(st.one_of(st.none(), st.builds(
            SoaRecord,
            nsname=host,
            hostmaster=host,
            serial=st.integers(1, 2**31),
            refresh=st.integers(0, 86400),
            retry=st.integers(0, 86400),
            expire=st.integers(0, 2**20),
            minttl=st.integers(0, 86400),
        ))),
        srv=draw(st.lists(st.builds(SrvRecord, priority=st.integers(0, 10), weight=st.integers(0, 100), port=st.integers(1, 65535), name=host), max_size=2)),
        ptr=draw(st.lists(host, max_size=1)),
        spf=draw(st.lists(st.just("v=spf1 -all"), max_size=1)),
        dkim=draw(st.lists(st.builds(DkimRecord, selector=st.sampled_from(["default", "google"]), record=st.lists(txt_fragment, min_size=1, max_size=2)), max_size=2)),
        dmarc=draw(st.lists(st.just("v=DMARC1; p=none"), max_size=1)),
    )


def expected_row_count(snapshot: DomainSnapshot) -> int:
    return (
        len(snapshot.a) + len(snapshot.aaaa) + len(snapshot.cname) + len(snapshot.mx)
        + sum(len(record) for record in snapshot.txt) + len(snapshot.ns)
        + (1 if snapshot.soa else 0) + len(snapshot.srv) + len(snapshot.ptr)
        + len(snapshot.spf) + len(snapshot.dkim) + len(snapshot.dmarc)
    )


def run_async(coro):
    """Helper to run async code in tests."""
    return asyncio.run(coro)


class TestSerializationProperty:
    """
    Property 1: Each value becomes one row in its kind's text form.
    """

    def test_mx_priority_first(self) -> None:
        assert serialize_mx(MxRecord(exchange="mail.example.com", priority=10)) == "10 mail.example.com"

    def test_srv_fields_in_order(self) -> None:
        srv = SrvRecord(priority=10, weight=60, port=5060, name="sip.example.com")

        assert serialize_srv(srv) == "10 60 5060 sip.example.com"

    def test_soa_is_sorted_json(self) -> None:
        soa = SoaRecord("ns1.example.com", "hostmaster.example.com", 2024010101, 7200, 3600, 1209600, 300)

        text = serialize_soa(soa)

        assert list(json.loads(text).keys()) == sorted(["nsname", "hostmaster", "serial", "refresh", "retry", "expire", "minttl"])
        assert json.loads(text)["serial"] == 2024010101

    def test_dkim_selector_prefix(self) -> None:
        dkim = DkimRecord(selector="google", record=["v=DKIM1; k=rsa;", "p=MIIB"])

        assert serialize_dkim(dkim) == "google: v=DKIM1; k=rsa; p=MIIB"

    def test_txt_one_row_per_fragment(self) -> None:
        snapshot = DomainSnapshot(txt=[["part one", "part two"], ["other"]])

        rows = flatten_snapshot(5, 2, snapshot)

        assert [(r.record_type, r.record_value) for r in rows] == [
            ("TXT", "part one"),
            ("TXT", "part two"),
            ("TXT", "other"),
        ]

    @given(snapshot=snapshot_strategy())
    @settings(max_examples=100)
    def test_row_count_and_tags(self, snapshot: DomainSnapshot) -> None:
        """*For any* snapshot, one row per value, all tagged with the check."""
        rows = flatten_snapshot(9, 3, snapshot)

        assert len(rows) == expected_row_count(snapshot)
        assert all(r.check_id == 9 and r.domain_id == 3 and r.id == 0 for r in rows)
        kinds = [RecordKind(r.record_type) for r in rows]
        order = list(RecordKind)
        assert kinds == sorted(kinds, key=order.index)

    def test_empty_snapshot_has_no_rows(self) -> None:
        assert flatten_snapshot(1, 1, DomainSnapshot()) == []


class TestTwoPhaseWriteProperty:
    """
    Property 2: History starts pending with status False and is finalized
    with the verdict; retrieved rows carry the check's id.
    """

    @given(snapshot=snapshot_strategy(), verdict=st.booleans())
    @settings(max_examples=30)
    def test_begin_record_finalize(self, snapshot: DomainSnapshot, verdict: bool) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = JsonRecordStore(Path(tmpdir) / "store.json", "secret", autosave=False)
            recorder = AuditRecorder(store)

            async def scenario():
                domain = await store.insert_domain("example.com", 1)
                check = await recorder.begin_check(domain)
                pending = (await store.list_check_history())[0]
                rows = await recorder.record_snapshot(check, snapshot)
                final = await recorder.finalize_check(check, verdict)
                stored = await store.list_retrieved_records(check.id)
                return check, pending, rows, final, stored

            check, pending, rows, final, stored = run_async(scenario())

            assert pending.status is False
            assert pending.state == CheckState.PENDING
            assert final.status is verdict
            assert final.state == CheckState.FINALIZED
            assert len(stored) == len(rows) == expected_row_count(snapshot)
            assert all(r.check_id == check.id for r in stored)
