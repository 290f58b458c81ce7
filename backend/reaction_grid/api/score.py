from flask import Blueprint, jsonify, request, current_app
from sqlalchemy.exc import SQLAlchemyError
from reaction_grid import db, socketio
from reaction_grid.services.leaderboard import ValidationError, parse_submission, submit_score, top_n


score = Blueprint('score', __name__)


@score.route('/score', methods=['GET'])
def get_leaderboard():
    limit = request.args.get('limit')
    if limit is not None:
        try:
            limit = int(limit)
        except ValueError:
            return jsonify({'error': 'limit must be an integer'}), 400
    try:
        leaderboard = top_n(limit)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[leaderboard-read] failed: {exc}")
        return jsonify({'error': str(exc)}), 500
    return jsonify({'leaderboard': leaderboard})


@score.route('/score', methods=['POST'])
def post_score():
    data = request.get_json(silent=True)
    try:
        fid, new_score, time_ms = parse_submission(data)
    except ValidationError as exc:
        return jsonify({'error': str(exc)}), 400

    current_app.logger.info(f"[score-submit] fid={fid} score={new_score} time={time_ms}")
    try:
        updated = submit_score(fid, new_score, time_ms)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[score-submit] fid={fid} store error")
        return jsonify({'error': str(exc), 'details': str(getattr(exc, 'orig', None) or exc)}), 500

    if updated:
        current_app.logger.info(f"[score-accepted] fid={fid} score={int(new_score)}")
        # Best-effort live push; never affects the response
        try:
            socketio.emit(
                'leaderboard_update',
                {'fid': fid, 'score': int(new_score)},
                to='leaderboard',
                namespace='/ws',
            )
        except Exception as exc:
            current_app.logger.warning(f"[leaderboard-push] fid={fid} emit failed: {exc}")
    return jsonify({'success': True, 'updated': updated})
