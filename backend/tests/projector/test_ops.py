"""Tests for projector.ops — target grammar and record validation."""

from datetime import datetime, timezone

from eoapi.models.enums import ChildType, EntryKind, Op, RootType
from projector.ops import (
    AlterOperand,
    BlockInsert,
    DescribeOperand,
    EntryInsert,
    GenericOperand,
    IndexUpsert,
    MetaSnapshot,
    Operation,
    iter_operations,
    iter_records,
    parse_record,
    parse_target,
)

CTX = {"agent": "@ana:example.org", "ts": "2025-01-01T00:00:00Z"}


def op(op: str, target: str, operand: object = None, **ctx: str) -> dict:
    return {
        "op": op,
        "target": target,
        "operand": {} if operand is None else operand,
        "ctx": {**CTX, **ctx},
    }


class TestParseTarget:
    """Tests for the target address grammar."""

    def test_root_only(self) -> None:
        """A bare root address has no child."""
        target = parse_target("wiki:operators")
        assert target is not None
        assert target.root_type == RootType.WIKI
        assert target.root_slug == "operators"
        assert target.child_type is None
        assert target.child_id is None
        assert target.root_id == "wiki:operators"

    def test_root_and_child(self) -> None:
        """The child segment selects a sub-record."""
        target = parse_target("page:about/block:b_123")
        assert target is not None
        assert target.child_type == ChildType.BLOCK
        assert target.child_id == "b_123"
        assert str(target) == "page:about/block:b_123"

    def test_index_child_id_keeps_colon(self) -> None:
        """Index rows are keyed by content id, which contains a colon."""
        target = parse_target("site:index/index:wiki:x")
        assert target is not None
        assert target.root_type == RootType.SITE
        assert target.child_type == ChildType.INDEX
        assert target.child_id == "wiki:x"

    def test_rejects_unknown_root_type(self) -> None:
        """Root types outside the grammar are rejected."""
        assert parse_target("forum:general") is None

    def test_rejects_unknown_child_type(self) -> None:
        """Child types outside the grammar are rejected."""
        assert parse_target("page:about/widget:w1") is None

    def test_rejects_empty_child_id(self) -> None:
        """A child segment needs an id."""
        assert parse_target("blog:hello/rev:") is None

    def test_rejects_extra_segments(self) -> None:
        """Only one child segment is allowed."""
        assert parse_target("page:about/block:b1/extra") is None

    def test_rejects_non_string(self) -> None:
        """Non-string targets are rejected, not raised on."""
        assert parse_target(42) is None  # type: ignore[arg-type]


class TestParseRecord:
    """Tests for parse_record shape checks and operand validation."""

    def test_bare_operation(self) -> None:
        """A bare operation is parsed with typed operand and context."""
        record = parse_record(
            op("INS", "page:about/block:b1", {"block_type": "text", "data": {"t": 1}}),
            position=0,
        )
        assert isinstance(record, Operation)
        assert record.op == Op.INSERT
        assert isinstance(record.operand, BlockInsert)
        assert record.operand.data == {"t": 1}
        assert record.ctx.agent == "@ana:example.org"
        assert record.ctx.ts == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_long_operator_name_accepted(self) -> None:
        """Operators may be spelled with their long name."""
        record = parse_record(op("INSERT", "exp:lab/entry:e1", {"kind": "result"}))
        assert isinstance(record, Operation)
        assert record.op == Op.INSERT
        assert isinstance(record.operand, EntryInsert)
        assert record.operand.kind == EntryKind.RESULT

    def test_envelope_operation(self) -> None:
        """Enveloped operations take the envelope's event id."""
        record = parse_record(
            {
                "event_id": "$evt1",
                "type": "eo.op",
                "content": op("NUL", "page:about/block:b1"),
            }
        )
        assert isinstance(record, Operation)
        assert record.event_id == "$evt1"
        assert record.op == Op.NULLIFY

    def test_envelope_metadata_snapshot(self) -> None:
        """Metadata envelopes become MetaSnapshot records."""
        record = parse_record(
            {
                "event_id": "$m1",
                "type": "com.eo.content.meta",
                "content": {"title": "About us"},
            }
        )
        assert record == MetaSnapshot(event_id="$m1", fields={"title": "About us"})

    def test_other_envelope_types_ignored(self) -> None:
        """Envelopes that are neither ops nor metadata are skipped."""
        record = parse_record(
            {"event_id": "$x", "type": "m.room.message", "content": {"body": "hi"}}
        )
        assert record is None

    def test_bare_event_id_falls_back_to_txn_then_position(self) -> None:
        """Bare records use event_id, then ctx.txn, then their position."""
        with_txn = parse_record(op("DES", "wiki:x", {"set": {}}, txn="t-1"), 4)
        without = parse_record(op("DES", "wiki:x", {"set": {}}), 4)
        assert with_txn is not None and with_txn.event_id == "t-1"
        assert without is not None and without.event_id == "$4"

    def test_missing_field_skipped(self) -> None:
        """Records lacking one of op/target/operand/ctx are skipped."""
        record = op("INS", "page:about/block:b1")
        del record["ctx"]
        assert parse_record(record) is None

    def test_unknown_operator_skipped(self) -> None:
        """Unrecognized operators are skipped."""
        assert parse_record(op("FROB", "page:about/block:b1")) is None

    def test_bad_target_skipped(self) -> None:
        """Targets outside the grammar are skipped."""
        assert parse_record(op("INS", "about/b1")) is None

    def test_wrong_operand_shape_skipped(self) -> None:
        """Operands that do not fit their operator's shape are skipped."""
        record = op("INS", "page:about/block:b1", {"data": "not a map"})
        assert parse_record(record) is None

    def test_unknown_patch_step_skipped(self) -> None:
        """Only add/replace/remove patch steps are accepted."""
        record = op(
            "ALT",
            "page:about/block:b1",
            {"patch": [{"op": "move", "from": "/a", "path": "/b"}]},
        )
        assert parse_record(record) is None

    def test_bad_timestamp_skipped(self) -> None:
        """A context without a parseable timestamp is skipped."""
        assert parse_record(op("NUL", "page:about/block:b1", ts="yesterday")) is None

    def test_naive_timestamp_read_as_utc(self) -> None:
        """Naive timestamps compare with aware ones."""
        record = parse_record(op("NUL", "page:about/block:b1", ts="2025-01-01T00:00:00"))
        assert record is not None
        assert record.ctx.ts.tzinfo is not None

    def test_alter_tracks_explicit_after(self) -> None:
        """ALTER distinguishes a missing 'after' from an explicit null."""
        moved = parse_record(op("ALT", "page:a/block:b", {"patch": [], "after": None}))
        kept = parse_record(op("ALT", "page:a/block:b", {"patch": []}))
        assert isinstance(moved, Operation) and isinstance(kept, Operation)
        assert isinstance(moved.operand, AlterOperand)
        assert isinstance(kept.operand, AlterOperand)
        assert moved.operand.moves is True
        assert kept.operand.moves is False

    def test_describe_index_unwraps_set(self) -> None:
        """An index DESCRIBE may wrap its fields in 'set'."""
        record = parse_record(
            op("DES", "site:index/index:wiki:x", {"set": {"title": "X"}})
        )
        assert isinstance(record, Operation)
        assert isinstance(record.operand, IndexUpsert)
        assert record.operand.title == "X"

    def test_describe_root_reads_set(self) -> None:
        """A root DESCRIBE carries a partial metadata update."""
        record = parse_record(op("DES", "blog:hello", {"set": {"status": "published"}}))
        assert isinstance(record, Operation)
        assert isinstance(record.operand, DescribeOperand)
        assert record.operand.fields == {"status": "published"}

    def test_describe_root_without_set_skipped(self) -> None:
        """A root DESCRIBE with no field update is malformed."""
        assert parse_record(op("DES", "blog:hello", {"title": "Hello"})) is None

    def test_relation_operators_are_free_form(self) -> None:
        """SEG/CON/SUP/REC keep whatever operand they carry."""
        record = parse_record(op("CON", "page:about", {"to": "wiki:x", "rel": "see"}))
        assert isinstance(record, Operation)
        assert isinstance(record.operand, GenericOperand)
        assert record.operand.model_extra == {"to": "wiki:x", "rel": "see"}


class TestIterRecords:
    """Tests for iter_records / iter_operations filtering."""

    def test_malformed_records_dropped_in_order(self) -> None:
        """Bad records vanish; good ones keep their relative order."""
        raw = [
            op("INS", "page:about/block:b1", txn="a"),
            "garbage",
            op("BOGUS", "page:about/block:b2", txn="b"),
            op("INS", "page:about/block:b3", txn="c"),
        ]
        assert [r.event_id for r in iter_records(raw)] == ["a", "c"]

    def test_filters_by_child_type_and_root(self) -> None:
        """Only operations on the requested child type and root are yielded."""
        records = list(
            iter_records(
                [
                    op("INS", "page:about/block:b1", txn="a"),
                    op("INS", "page:other/block:b1", txn="b"),
                    op("DES", "page:about", {"set": {}}, txn="c"),
                    op("INS", "exp:lab/entry:e1", txn="d"),
                ]
            )
        )
        selected = iter_operations(records, ChildType.BLOCK, "page:about")
        assert [r.event_id for r in selected] == ["a"]
