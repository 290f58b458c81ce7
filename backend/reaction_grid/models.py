from datetime import datetime, timezone

from reaction_grid import db


def utcnow():
    return datetime.now(timezone.utc)


class User(db.Model):
    """One row per player, keyed by fid.

    ``score`` is the best-ever score and only ever increases. ``reaction_time``
    (ms, NULL meaning "no time yet") is written only by the same statement
    that raises ``score``; see services.leaderboard.submit_score.
    """
    __tablename__ = 'users'
    fid = db.Column(db.BigInteger, primary_key=True, autoincrement=False)
    username = db.Column(db.String(64), nullable=True)
    display_name = db.Column(db.String(128), nullable=True)
    pfp_url = db.Column(db.Text, nullable=True)
    wallet_address = db.Column(db.String(64), nullable=True)
    score = db.Column(db.Integer, nullable=False, default=0, server_default='0', index=True)
    reaction_time = db.Column(db.Integer, nullable=True)
    last_seen = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'fid': self.fid,
            'username': self.username,
            'display_name': self.display_name,
            'pfp_url': self.pfp_url,
            'wallet_address': self.wallet_address,
            'score': self.score,
            'reaction_time': self.reaction_time,
            'last_seen': self.last_seen.isoformat() if self.last_seen else None,
        }

    def to_leaderboard_dict(self, rank):
        return {
            'rank': rank,
            'fid': self.fid,
            'username': self.username,
            'display_name': self.display_name,
            'pfp_url': self.pfp_url,
            'score': self.score,
            'reaction_time': self.reaction_time,
        }

    def __repr__(self):
        return f'<User fid={self.fid} score={self.score}>'
