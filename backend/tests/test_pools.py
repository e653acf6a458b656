from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.domain.enums import PoolLookup
from app.domain.errors import InvalidFixture, MatchNotFound, PoolNotFound
from app.models import Base, Match, Pool, PoolMember
from app.services.pools import load_match, lookup_pool, resolve_pool


def _session() -> Session:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    session = Session(engine)
    session.add_all(
        [
            Pool(id="pool-1", code="AMIGOS", name="Amigos"),
            Pool(id="pool-2", code="pool-1", name="Code collides with another id"),
        ]
    )
    session.add_all(
        [
            PoolMember(pool_id="pool-1", user_id="ana"),
            PoolMember(pool_id="pool-2", user_id="ana"),
            PoolMember(pool_id="pool-2", user_id="bia"),
        ]
    )
    session.add_all(
        [
            Match(id="M1", pool_id="pool-1", home_team="A", away_team="B", start_time=datetime(2025, 1, 1, tzinfo=timezone.utc)),
            Match(id="M2", pool_id="pool-1", home_team="C", away_team="D", start_time=None),
        ]
    )
    session.commit()
    return session


def test_lookup_prefers_id_then_code() -> None:
    with _session() as session:
        assert lookup_pool(session, "ana", "pool-1").lookup == PoolLookup.BY_ID
        assert lookup_pool(session, "ana", " AMIGOS ").pool_id == "pool-1"
        assert lookup_pool(session, "ana", "AMIGOS").lookup == PoolLookup.BY_CODE
        # bia is not in pool-1, so the id miss falls back to the code of pool-2
        resolution = lookup_pool(session, "bia", "pool-1")
        assert (resolution.lookup, resolution.pool_id) == (PoolLookup.BY_CODE, "pool-2")


def test_non_member_and_missing_pool_are_indistinguishable() -> None:
    with _session() as session:
        assert lookup_pool(session, "bia", "AMIGOS").lookup == PoolLookup.NOT_FOUND
        assert lookup_pool(session, "ana", "nope").lookup == PoolLookup.NOT_FOUND
        assert lookup_pool(session, "ana", "   ").lookup == PoolLookup.NOT_FOUND

        with pytest.raises(PoolNotFound) as not_member:
            resolve_pool(session, "bia", "AMIGOS")
        with pytest.raises(PoolNotFound) as missing:
            resolve_pool(session, "ana", "nope")
        assert not_member.value.message == missing.value.message


def test_load_match_scoped_to_pool() -> None:
    with _session() as session:
        assert load_match(session, "M1", "pool-1").id == "M1"
        with pytest.raises(MatchNotFound):
            load_match(session, "M1", "pool-2")
        with pytest.raises(InvalidFixture):
            load_match(session, "M2", "pool-1")
