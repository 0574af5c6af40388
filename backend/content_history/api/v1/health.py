from flask import jsonify
from content_history.extensions import db
from . import v1_bp

@v1_bp.route('/health', methods=['GET'])
def health_check():
    db.session.execute(db.text("SELECT 1"))
    return jsonify({
        "status": "ok",
        "service": "content-history"
    })
