"""
Property-based tests for the domain registry.

Registration runs against a real JsonRecordStore in a temporary directory.
"""

import asyncio
import tempfile
from io import StringIO
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from dns_monitor.audit_logger import AuditLogger
from dns_monitor.domain_registry import DomainRegistry
from dns_monitor.enums import RecordKind
from dns_monitor.exceptions import ConflictError, NotFoundError, ValidationError
from dns_monitor.record_store import JsonRecordStore


def run_async(coro):
    """Helper to run async code in tests."""
    return asyncio.run(coro)


def make_registry(tmpdir: str, logger=None) -> DomainRegistry:
    store = JsonRecordStore(Path(tmpdir) / "store.json", "secret", autosave=False)
    return DomainRegistry(store, logger=logger)


@st.composite
def domain_name_strategy(draw) -> str:
    label = draw(st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789", min_size=1, max_size=15))
    return f"{label}.{draw(st.sampled_from(['com', 'net', 'org']))}"


owner_strategy = st.integers(min_value=1, max_value=1000)


class TestUniqueNameProperty:
    """
    Property 1: A canonical name belongs to exactly one owner.
    """

    @given(name=domain_name_strategy(), owner=owner_strategy)
    @settings(max_examples=50)
    def test_same_owner_gets_existing_domain(self, name: str, owner: int) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            registry = make_registry(tmpdir)

            async def scenario():
                first = await registry.register_domain(name, owner)
                again = await registry.register_domain(f"  {name.upper()}. ", owner)
                return first, again, await registry.list_domains()

            first, again, domains = run_async(scenario())

            assert again == first
            assert first.name == name
            assert len(domains) == 1

    @given(name=domain_name_strategy(), owner=owner_strategy, other=owner_strategy)
    @settings(max_examples=50)
    def test_other_owner_conflicts(self, name: str, owner: int, other: int) -> None:
        if owner == other:
            other = owner + 1
        with tempfile.TemporaryDirectory() as tmpdir:
            registry = make_registry(tmpdir)
            run_async(registry.register_domain(name, owner))

            try:
                run_async(registry.register_domain(name.upper(), other))
                assert False, "Expected ConflictError"
            except ConflictError as e:
                assert e.code == "domain_owned"
                assert e.domain == name
                assert e.owner_id == other
                assert e.to_dict()["details"] == {"domain": name, "owner_id": other}

            assert run_async(registry.list_domain_names()) == [name]

    def test_invalid_name_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            registry = make_registry(tmpdir)
            try:
                run_async(registry.register_domain("not a domain", 1))
                assert False, "Expected ValidationError"
            except ValidationError as e:
                assert e.code == "forbidden_chars"
            assert run_async(registry.list_domains()) == []

    def test_lookup_by_name(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            registry = make_registry(tmpdir)
            domain = run_async(registry.register_domain("Example.com", 1))

            assert run_async(registry.get_domain_by_name("EXAMPLE.COM")) == domain
            assert run_async(registry.get_domain_by_name("other.com")) is None
            assert run_async(registry.get_domain_by_name("bad name")) is None

    def test_domains_listed_by_name(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            registry = make_registry(tmpdir)

            async def scenario():
                for name in ["zeta.com", "alpha.org", "mid.net"]:
                    await registry.register_domain(name, 1)
                return await registry.list_domain_names()

            assert run_async(scenario()) == ["alpha.org", "mid.net", "zeta.com"]


class TestExpectedRecordProperty:
    """
    Property 2: Expectations are validated, uppercased and coalesced.
    """

    @given(
        kind=st.sampled_from(list(RecordKind)),
        value=st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789.=- ", min_size=1, max_size=30).filter(str.strip),
        repeats=st.integers(min_value=1, max_value=4),
    )
    @settings(max_examples=50)
    def test_duplicates_coalesced(self, kind: RecordKind, value: str, repeats: int) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            store = JsonRecordStore(Path(tmpdir) / "store.json", "secret", autosave=False)
            registry = DomainRegistry(store)

            async def scenario():
                domain = await registry.register_domain("example.com", 1)
                records = [
                    await registry.add_expected_record(domain.id, kind.value.lower(), value)
                    for _ in range(repeats)
                ]
                stored = await store.list_expected_records(domain.id)
                return records, stored

            records, stored = run_async(scenario())

            assert len({r.id for r in records}) == 1
            assert len(stored) == 1
            assert stored[0].record_type == kind.value
            assert stored[0].record_value == value

    def test_unknown_kind_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            registry = make_registry(tmpdir)
            domain = run_async(registry.register_domain("example.com", 1))
            try:
                run_async(registry.add_expected_record(domain.id, "HINFO", "x"))
                assert False, "Expected ValidationError"
            except ValidationError as e:
                assert e.code == "invalid_record_type"

    def test_missing_domain(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            registry = make_registry(tmpdir)
            try:
                run_async(registry.add_expected_record(42, "A", "192.0.2.1"))
                assert False, "Expected NotFoundError"
            except NotFoundError as e:
                assert e.details["domain_id"] == 42

    def test_combined_registration(self) -> None:
        output = StringIO()
        with tempfile.TemporaryDirectory() as tmpdir:
            registry = make_registry(tmpdir, logger=AuditLogger(output_format="json", output_stream=output))

            result = run_async(registry.add_domain_with_expected_record("Example.com", "mx", "mail.example.com", 7))

            assert result.domain.name == "example.com"
            assert result.domain.owner_id == 7
            assert result.expected_record.domain_id == result.domain.id
            assert result.expected_record.record_type == "MX"
            assert "Registered domain example.com" in output.getvalue()

    def test_combined_registration_validates_record_first(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            registry = make_registry(tmpdir)
            try:
                run_async(registry.add_domain_with_expected_record("example.com", "A", "  ", 1))
                assert False, "Expected ValidationError"
            except ValidationError as e:
                assert e.code == "empty_record_value"
            assert run_async(registry.list_domains()) == []
