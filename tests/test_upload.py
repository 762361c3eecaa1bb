import pytest
from sqlalchemy import select

from apps.admin.upload import EmptyPayloadError, parse_pairs_payload, upload_pairs
from models.pair import Pair


def test_parse_skips_blank_lines_and_trims():
    lines, errors = parse_pairs_payload("123, John Doe\n\n   \n456 ,Jane Smith\n")

    assert errors == []
    assert [(p.number, p.name) for p in lines] == [("123", "John Doe"), ("456", "Jane Smith")]
    assert [p.line for p in lines] == [1, 4]


def test_parse_reports_lines_missing_a_column():
    lines, errors = parse_pairs_payload("1,Ann\n2\n,Nameless\n3,\n")

    assert [(p.number, p.name) for p in lines] == [("1", "Ann")]
    assert [e.line for e in errors] == [2, 3, 4]
    assert all(e.reason == "missing number or name" for e in errors)


def test_parse_keeps_quoted_commas_and_ignores_extra_columns():
    lines, _ = parse_pairs_payload('7,"Smith, John"\n8,Ann,extra\n')

    assert [(p.number, p.name) for p in lines] == [("7", "Smith, John"), ("8", "Ann")]


async def test_upload_inserts_new_numbers_and_skips_duplicates(db):
    db.add(Pair(number="1", name="Existing"))
    await db.commit()

    report = await upload_pairs(db, "1,Dup of stored\n2,Bea\n2,Dup in payload\nbroken\n3,Cy\n")

    assert report.created == 2
    assert report.skipped == 3
    assert sorted(e.line for e in report.errors) == [1, 3, 4]

    rows = (await db.execute(select(Pair.number, Pair.name).order_by(Pair.number))).all()
    assert [tuple(r) for r in rows] == [("1", "Existing"), ("2", "Bea"), ("3", "Cy")]


@pytest.mark.parametrize("payload", ["", "   \n  "])
async def test_upload_rejects_empty_payload(db, payload):
    with pytest.raises(EmptyPayloadError):
        await upload_pairs(db, payload)


def test_parse_unbalanced_quote_stays_on_its_line():
    lines, errors = parse_pairs_payload('1,"Alice\n2,Bob\n3,Carol\n')

    assert errors == []
    assert [p.number for p in lines] == ["1", "2", "3"]
    assert [p.line for p in lines] == [1, 2, 3]
    assert lines[1].name == "Bob"


async def test_upload_unbalanced_quote_does_not_swallow_later_lines(db):
    report = await upload_pairs(db, '1,"Alice\n2,Bob\n3,Carol\n')

    assert report.created == 3
    rows = (await db.execute(select(Pair.number, Pair.name).order_by(Pair.number))).all()
    assert [r.number for r in rows] == ["1", "2", "3"]
    assert not any("\n" in r.name for r in rows)
