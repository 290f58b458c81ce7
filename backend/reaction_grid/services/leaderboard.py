"""Global leaderboard: ratchet updates, top-N reads and profile upserts.

The only shared mutable state on the server is the ``users`` table, so the
increment-if-higher rule is expressed as one conditional UPDATE rather than a
read followed by a write. Two concurrent submissions for the same fid then
serialize in the database and the higher score always survives.
"""

import math
from typing import Any, Optional

from flask import current_app
from sqlalchemy import case, or_, update
from sqlalchemy.exc import IntegrityError

from reaction_grid import db
from reaction_grid.models import User, utcnow


class ValidationError(ValueError):
    """Request payload is missing or malformed; nothing was applied."""


# users.score / users.reaction_time are 32-bit INTEGER columns
MAX_COLUMN_VALUE = 2**31 - 1


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def parse_fid(value: Any) -> int:
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, float) and _is_number(value) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError('fid must be a positive integer')
    return value


def parse_submission(data: Any):
    """Validate a POST /score body and return ``(fid, score, time_ms)``.

    ``time_ms`` is None when the client did not send one.
    """
    if not isinstance(data, dict):
        raise ValidationError('Missing data')
    if not data.get('fid') or data.get('score') is None:
        raise ValidationError('Missing data')
    fid = parse_fid(data['fid'])
    score = data['score']
    if not _is_number(score) or not 0 <= score <= MAX_COLUMN_VALUE:
        raise ValidationError(f"score must be a number between 0 and {MAX_COLUMN_VALUE}")
    time_ms = data.get('time')
    if time_ms is not None and (not _is_number(time_ms) or not 0 <= time_ms <= MAX_COLUMN_VALUE):
        raise ValidationError(f"time must be a number between 0 and {MAX_COLUMN_VALUE}")
    return fid, score, time_ms


def _ratchet(fid: int, score, new_score: int, new_time: Optional[int]) -> bool:
    values = {'score': new_score}
    if new_time is not None:
        values['reaction_time'] = case(
            (or_(User.reaction_time.is_(None), User.reaction_time > new_time), new_time),
            else_=User.reaction_time,
        )
    stmt = (
        update(User)
        .where(User.fid == fid, User.score < score)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount == 1


def _row_exists(fid: int) -> bool:
    return User.query.filter_by(fid=fid).first() is not None


def submit_score(fid: int, score, reaction_time_ms=None) -> bool:
    """Raise the stored best score for ``fid`` if ``score`` beats it.

    Returns True when the submission was accepted (and written). The raw
    score is compared; the floored score is what gets stored. A player
    without a row is treated as score 0 / time +inf. ``reaction_time`` is only
    touched by an accepted write and then keeps the faster of the stored and
    submitted times.
    """
    new_score = int(math.floor(score))
    new_time = int(math.floor(reaction_time_ms)) if reaction_time_ms is not None else None

    if _ratchet(fid, score, new_score, new_time):
        db.session.commit()
        return True

    if _row_exists(fid) or score <= 0:
        db.session.rollback()
        return False

    try:
        db.session.add(User(fid=fid, score=new_score, reaction_time=new_time))
        db.session.flush()
    except IntegrityError:
        # Another request created the row first; fall back to the ratchet
        db.session.rollback()
        current_app.logger.info(f"[score-race] fid={fid} row created concurrently, retrying update")
        accepted = _ratchet(fid, score, new_score, new_time)
        db.session.commit()
        return accepted
    db.session.commit()
    return True


def top_n(limit: Optional[int] = None) -> list:
    """Ranked leaderboard, best score first; ties ordered by fid."""
    cap = int(current_app.config.get('LEADERBOARD_LIMIT', 50))
    limit = cap if limit is None else max(1, min(int(limit), cap))
    users = User.query.order_by(User.score.desc(), User.fid.asc()).limit(limit).all()
    return [u.to_leaderboard_dict(rank) for rank, u in enumerate(users, start=1)]


_PROFILE_FIELDS = {
    'username': 'username',
    'displayName': 'display_name',
    'pfpUrl': 'pfp_url',
}


def _apply_profile(row: User, user: dict) -> None:
    for src, attr in _PROFILE_FIELDS.items():
        if src in user:
            setattr(row, attr, user[src])
    verifications = user.get('verifications') or []
    row.wallet_address = verifications[0] if isinstance(verifications, list) and verifications else None
    row.last_seen = utcnow()


def upsert_profile(user: Any) -> User:
    """Create or refresh the profile row for ``user['fid']``.

    Score fields are never touched here; a new row starts at 0 / no time.
    """
    if not isinstance(user, dict) or not user.get('fid'):
        raise ValidationError('Missing user data')
    fid = parse_fid(user['fid'])

    row = User.query.filter_by(fid=fid).first()
    if row is None:
        row = User(fid=fid, score=0)
        _apply_profile(row, user)
        try:
            db.session.add(row)
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            row = User.query.filter_by(fid=fid).first()
            _apply_profile(row, user)
    else:
        _apply_profile(row, user)
    db.session.commit()
    return row
