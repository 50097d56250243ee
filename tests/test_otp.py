import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from shortener.models.db_operation import select_records
from shortener.services.otp import otp_store
from shortener.services.sweeper import ExpirySweeper


def _now():
    return datetime.now(timezone.utc)


def test_created_record_is_readable_before_expiry():
    expires_at = _now() + timedelta(minutes=10)

    record = otp_store.create_otp(
        "Alice@Example.com", "123456", "register", expires_at, meta={"attempts": 0}
    )

    assert record.email == "alice@example.com"
    assert record.meta == {"attempts": 0}
    assert record.created_at is not None
    found = otp_store.find_valid("alice@example.com", "register", "123456")
    assert found is not None
    assert found.id == record.id


def test_meta_defaults_to_empty_dict():
    record = otp_store.create_otp(
        "a@b.com", "111111", "reset", _now() + timedelta(minutes=1)
    )

    assert record.meta == {}


def test_repeated_requests_keep_every_record():
    expires_at = _now() + timedelta(minutes=10)
    first = otp_store.create_otp("a@b.com", "111111", "register", expires_at)
    second = otp_store.create_otp("a@b.com", "222222", "register", expires_at)

    rows = select_records("otp", email="a@b.com", purpose="register")

    assert {row.id for row in rows} == {first.id, second.id}
    assert otp_store.latest_valid("a@b.com", "register").id == second.id
    assert otp_store.find_valid("a@b.com", "register", "111111").id == first.id


def test_purpose_is_part_of_the_key():
    otp_store.create_otp("a@b.com", "123456", "reset", _now() + timedelta(minutes=5))

    assert otp_store.find_valid("a@b.com", "register", "123456") is None
    assert otp_store.find_valid("a@b.com", "reset", "123456") is not None


def test_unknown_purpose_is_rejected():
    with pytest.raises(ValueError):
        otp_store.create_otp("a@b.com", "123456", "login", _now())


def test_expired_record_is_not_returned_even_before_purge():
    record = otp_store.create_otp(
        "a@b.com", "123456", "register", _now() - timedelta(seconds=1)
    )

    assert otp_store.find_valid("a@b.com", "register", "123456") is None
    assert otp_store.latest_valid("a@b.com", "register") is None
    # The row still exists until the sweeper gets to it.
    assert [row.id for row in select_records("otp", email="a@b.com")] == [record.id]


def test_record_stops_verifying_at_its_expiry_instant():
    expires_at = _now() + timedelta(minutes=5)
    otp_store.create_otp("a@b.com", "123456", "register", expires_at)

    before = otp_store.find_valid(
        "a@b.com", "register", "123456", now=expires_at - timedelta(seconds=1)
    )
    at = otp_store.find_valid("a@b.com", "register", "123456", now=expires_at)

    assert before is not None
    assert at is None


def test_purge_removes_only_expired_rows():
    otp_store.create_otp("old@b.com", "1", "register", _now() - timedelta(minutes=1))
    fresh = otp_store.create_otp(
        "new@b.com", "2", "register", _now() + timedelta(minutes=1)
    )

    assert otp_store.purge_expired() == 1
    assert [row.id for row in select_records("otp")] == [fresh.id]


def test_sweeper_pass_purges_expired_rows():
    otp_store.create_otp("old@b.com", "1", "reset", _now() - timedelta(minutes=1))
    sweeper = ExpirySweeper(otp_store, interval_seconds=60)

    removed = asyncio.run(sweeper.sweep_once())

    assert removed == 1
    assert select_records("otp") == []


def test_sweeper_runs_in_background_until_stopped():
    otp_store.create_otp("old@b.com", "1", "reset", _now() - timedelta(minutes=1))

    async def scenario():
        sweeper = ExpirySweeper(otp_store, interval_seconds=0.05)
        sweeper.start()
        assert sweeper.running
        for _ in range(100):
            if not select_records("otp"):
                break
            await asyncio.sleep(0.05)
        await sweeper.stop()
        return sweeper.running

    still_running = asyncio.run(scenario())

    assert still_running is False
    assert select_records("otp") == []


def test_issue_discards_earlier_codes():
    first = otp_store.issue("a@b.com", "register")
    second = otp_store.issue("a@b.com", "register")

    rows = select_records("otp", email="a@b.com")

    assert [row.id for row in rows] == [second.id]
    assert first.id != second.id
    assert second.expires_at > _now() + timedelta(minutes=9)


def test_consume_deletes_record():
    record = otp_store.issue("a@b.com", "reset")

    assert otp_store.consume(record.id) is True
    assert otp_store.consume(record.id) is False
    assert otp_store.find_valid("a@b.com", "reset", record.code) is None


def test_generated_codes_are_numeric_and_fixed_length():
    codes = {otp_store.generate_code() for _ in range(50)}

    assert all(len(code) == 6 and code.isdigit() for code in codes)


def test_offset_expiry_is_compared_in_utc():
    eastern = timezone(timedelta(hours=-5))
    expires_at = datetime.now(eastern) + timedelta(minutes=10)
    otp_store.create_otp("tz@b.com", "123456", "register", expires_at)

    record = otp_store.find_valid("tz@b.com", "register", "123456")

    assert record is not None
    assert record.expires_at == expires_at
    assert record.expires_at.utcoffset() == timedelta(0)


def test_consumed_id_is_not_reused_by_reissue():
    first = otp_store.issue("a@b.com", "register")
    second = otp_store.issue("a@b.com", "register")

    assert otp_store.consume(first.id) is False
    assert otp_store.find_valid("a@b.com", "register", second.code) is not None
