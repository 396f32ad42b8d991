"""
MINT BACKEND API ROUTES - FLASK BLUEPRINT

One endpoint per popup action. Every account operation goes through the
account store (mint_database); codes come from mint_core.otp_core.

EXAMPLES:
curl http://localhost:5000/api/accounts
curl -X POST http://localhost:5000/api/accounts -H "Content-Type: application/json" -d '{"name": "GitHub", "secret": "JBSWY3DPEHPK3PXP"}'
curl http://localhost:5000/api/accounts/GitHub
curl -X POST http://localhost:5000/api/verify/GitHub -H "Content-Type: application/json" -d '{"code": "123456"}'
"""

import asyncio
import base64
import io
import logging
import math
import time

import qrcode
from flask import Blueprint, current_app, jsonify, request

from mint_core.errors import HashPrimitiveError, InvalidOtpAuthUri
from mint_core.otp_core import MAX_VERIFY_WINDOW, generate, remaining_seconds, verify_totp
from mint_core.otpauth import format_otpauth_uri, parse_otpauth_uri
from mint_core.views import ERROR_TEXT
from mint_database import db_manager

logger = logging.getLogger(__name__)

accounts_bp = Blueprint('accounts', __name__, url_prefix='/api')


def _db_path() -> str:
    return current_app.config["DATABASE_FILE"]


def _now() -> float:
    return time.time()


def _json_body():
    """JSON object body as a dict, {} when absent, None when it is not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def _current_code(secret: str, now: float) -> str:
    return asyncio.run(generate(secret, now))


@accounts_bp.route('/accounts', methods=['GET'])
def list_accounts():
    """
    ACCOUNT LIST WITH CURRENT CODES

      curl http://localhost:5000/api/accounts

    A failing account shows "Error" instead of a code; the others still render.
    """
    now = _now()
    accounts = []
    for name, secret in db_manager.get_keys(_db_path()).items():
        try:
            code = _current_code(secret, now)
        except HashPrimitiveError as e:
            logger.error("TOTP error for %r: %s", name, e)
            code = ERROR_TEXT
        accounts.append({"name": name, "code": code})

    return jsonify({"accounts": accounts, "remaining": remaining_seconds(now)})


@accounts_bp.route('/accounts', methods=['POST'])
def add_account():
    """
    SAVE A MANUALLY ENTERED ACCOUNT

    Body: {"name": "GitHub", "secret": "JBSWY3DPEHPK3PXP"}
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    name = str(data.get('name') or '').strip()
    secret = str(data.get('secret') or '').strip()

    if not db_manager.save_account(name, secret, _db_path()):
        return jsonify({"error": "Name and secret are required"}), 400

    return jsonify({"message": "Account saved", "name": name}), 201


@accounts_bp.route('/accounts/import', methods=['POST'])
def import_uri():
    """
    PARSE A SCANNED otpauth:// URI

    Body: {"uri": "otpauth://totp/alice?secret=JBSWY3DPEHPK3PXP&issuer=GitHub"}

    Only parses; the client confirms by POSTing to /api/accounts.
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    try:
        entry = parse_otpauth_uri(data.get('uri', ''))
    except InvalidOtpAuthUri as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "name": entry.name,
        "secret": entry.secret,
        "issuer": entry.issuer,
        "message": "QR data loaded.",
    })


@accounts_bp.route('/accounts/<string:name>', methods=['GET'])
def view_account(name):
    """
    SINGLE ACCOUNT VIEW

      curl http://localhost:5000/api/accounts/GitHub
    """
    secret = db_manager.get_account_secret(name, _db_path())
    if secret is None:
        return jsonify({"error": f"Account '{name}' not found"}), 404

    now = _now()
    try:
        code = _current_code(secret, now)
    except HashPrimitiveError as e:
        logger.error("TOTP error for %r: %s", name, e)
        return jsonify({"error": "unable to generate code", "code": ERROR_TEXT}), 500

    return jsonify({
        "name": name,
        "code": code,
        "remaining": remaining_seconds(now),
        "otpauth_uri": format_otpauth_uri(name, secret),
    })


@accounts_bp.route('/accounts/<string:name>/qr', methods=['GET'])
def account_qr(name):
    """QR preview (PNG data URI) of the account's otpauth URI."""
    secret = db_manager.get_account_secret(name, _db_path())
    if secret is None:
        return jsonify({"error": f"Account '{name}' not found"}), 404

    uri = format_otpauth_uri(name, secret)

    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=4,
        border=2,
    )
    qr.add_data(uri)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    img_str = base64.b64encode(buffer.getvalue()).decode()

    return jsonify({"qr_code": f"data:image/png;base64,{img_str}", "uri": uri, "name": name})


@accounts_bp.route('/accounts/<string:name>', methods=['DELETE'])
def remove_account(name):
    if not db_manager.delete_account(name, _db_path()):
        return jsonify({"error": f"Account '{name}' not found"}), 404
    return jsonify({"message": "Account deleted", "name": name})


@accounts_bp.route('/totp', methods=['POST'])
def totp_for_secret():
    """
    CODE FOR AN AD-HOC SECRET

    Body: {"secret": "JBSWY3DPEHPK3PXP", "timestamp": 59}   (timestamp optional)
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    secret = data.get('secret')
    if not isinstance(secret, str) or not secret.strip():
        return jsonify({"error": "Secret is required"}), 400

    timestamp = data.get('timestamp')
    if timestamp is None:
        timestamp = _now()
    elif (isinstance(timestamp, bool) or not isinstance(timestamp, (int, float))
          or not math.isfinite(timestamp) or timestamp < 0):
        return jsonify({"error": "timestamp must be a finite, non-negative number"}), 400

    try:
        code = _current_code(secret, timestamp)
    except ValueError as e:
        # counter does not fit in 64 bits
        return jsonify({"error": str(e)}), 400
    except HashPrimitiveError as e:
        logger.error("TOTP error for ad-hoc secret: %s", e)
        return jsonify({"error": "unable to generate code"}), 500

    return jsonify({"code": code, "remaining": remaining_seconds(timestamp), "timestamp": timestamp})


@accounts_bp.route('/verify/<string:name>', methods=['POST'])
def verify_account_code(name):
    """
    VERIFY A CODE FOR A STORED ACCOUNT

    Body: {"code": "123456", "window": 1}
    window = accepted neighbouring 30 s windows on each side (default 1)
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    if "code" not in data:
        return jsonify({"error": "Code is required"}), 400

    secret = db_manager.get_account_secret(name, _db_path())
    if secret is None:
        return jsonify({"error": f"Account '{name}' not found"}), 404

    window = data.get('window', 1)
    if isinstance(window, bool) or not isinstance(window, int) or not 0 <= window <= MAX_VERIFY_WINDOW:
        return jsonify({"error": f"window must be an integer between 0 and {MAX_VERIFY_WINDOW}"}), 400

    valid = verify_totp(secret, str(data["code"]), timestamp=_now(), window=window)
    return jsonify({"valid": valid, "name": name})
