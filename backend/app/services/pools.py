from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.enums import PoolLookup
from app.domain.errors import InvalidFixture, MatchNotFound, PoolNotFound
from app.domain.types import PoolResolution
from app.models import Match, Pool, PoolMember


def _member_pool_id(session: Session, user_id: str, condition) -> str | None:
    stmt = (
        select(Pool.id)
        .join(PoolMember, PoolMember.pool_id == Pool.id)
        .where(PoolMember.user_id == user_id, condition)
        .limit(1)
    )
    return session.execute(stmt).scalar_one_or_none()


def lookup_pool(session: Session, user_id: str, pool_id_or_code: str) -> PoolResolution:
    """Find a pool the caller belongs to by id, falling back to its join code.

    Pools the caller is not a member of are reported as ``NOT_FOUND`` exactly
    like pools that do not exist, so non-members cannot discover pool ids.
    """
    candidate = pool_id_or_code.strip()
    if not candidate:
        return PoolResolution(PoolLookup.NOT_FOUND)

    by_id = _member_pool_id(session, user_id, Pool.id == candidate)
    if by_id is not None:
        return PoolResolution(PoolLookup.BY_ID, by_id)

    by_code = _member_pool_id(session, user_id, Pool.code == candidate)
    if by_code is not None:
        return PoolResolution(PoolLookup.BY_CODE, by_code)

    return PoolResolution(PoolLookup.NOT_FOUND)


def resolve_pool(session: Session, user_id: str, pool_id_or_code: str) -> str:
    resolution = lookup_pool(session, user_id, pool_id_or_code)
    if resolution.lookup == PoolLookup.NOT_FOUND or resolution.pool_id is None:
        raise PoolNotFound("Pool not found or not allowed")
    return resolution.pool_id


def load_match(session: Session, match_id: str, pool_id: str) -> Match:
    match = session.execute(
        select(Match).where(Match.id == match_id, Match.pool_id == pool_id)
    ).scalar_one_or_none()
    if match is None:
        raise MatchNotFound("Match not found in this pool or not allowed")
    if match.start_time is None:
        raise InvalidFixture("Match start_time invalid")
    return match
