from datetime import datetime, timezone

import pytest

from app.utils.identifiers import (
    JOIN_CODE_ALPHABET,
    build_user_id_prefix,
    generate_join_code,
    generate_session_id,
    normalize_join_code,
)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Alice", "USR-ALICEXX"),
        ("Grace Hopper", "USR-GRACEHO"),
        ("o'neil-smith", "USR-ONEILSM"),
        ("???", "USR-XXXXXXX"),
        (None, "USR-XXXXXXX"),
    ],
)
def test_user_id_prefix(name, expected):
    assert build_user_id_prefix(name) == expected


def test_first_session_id_of_the_day(db_session):
    created = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)
    assert generate_session_id(db_session, created) == "SES20260314-0001"


@pytest.mark.parametrize(
    "raw, expected",
    [("k7qx2m", "K7QX2M"), (" K7-QX 2M ", "K7QX2M"), (None, "")],
)
def test_normalize_join_code(raw, expected):
    assert normalize_join_code(raw) == expected


def test_join_code_uses_readable_alphabet(db_session):
    code = generate_join_code(db_session, length=8)

    assert len(code) == 8
    assert set(code) <= set(JOIN_CODE_ALPHABET)
    assert not set(code) & {"0", "O", "1", "I"}
