from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import SQLAlchemyError
from reaction_grid import db
from reaction_grid.services.leaderboard import ValidationError, upsert_profile


user = Blueprint('user', __name__)


@user.route('/user', methods=['POST'])
def sync_user():
    """Upsert the caller's profile; the first verified address becomes the wallet."""
    data = request.get_json(silent=True) or {}
    try:
        row = upsert_profile(data.get('user') if isinstance(data, dict) else None)
    except ValidationError as exc:
        return jsonify({'error': str(exc)}), 400
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("[user-upsert] store error")
        return jsonify({'error': str(exc)}), 500

    current_app.logger.info(f"[user-upsert] fid={row.fid} wallet={row.wallet_address}")
    return jsonify({'success': True})
