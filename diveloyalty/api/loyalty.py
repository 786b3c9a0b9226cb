"""
Loyalty API endpoints.

Handles:
- Tier table
- Profile lookup for the staff dashboard (rewards summary)
- Enrollment and capability grants
- Earning, redemption and manual adjustments
- Gift card requests
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..extensions import get_profile_store
from ..middleware.staff_auth import require_staff
from ..services.points_service import PointsService, POINT_RATES
from ..services.rewards_summary import build_rewards_summary
from ..services.tier_calculator import list_tiers
from ..utils.errors import ErrorCode, bad_request

loyalty_bp = Blueprint('loyalty', __name__)


def get_points_service() -> PointsService:
    return PointsService(
        get_profile_store(),
        timezone=current_app.config['LOYALTY_TIMEZONE']
    )


# ==================== Tiers ====================

@loyalty_bp.route('/tiers', methods=['GET'])
def get_tiers():
    """Tier table with multipliers, yearly requirements and earning rates."""
    return jsonify({
        'tiers': list_tiers(),
        'point_rates': POINT_RATES,
    })


# ==================== Profile Lookup ====================

@loyalty_bp.route('/profiles/<uid>', methods=['GET'])
@require_staff
def get_profile_summary(uid):
    """
    Look up a member by uid (scanned from the membership card barcode).

    Returns:
        Points balances, tier, progress and recent history
    """
    service = get_points_service()
    profile = service.get_profile(uid)

    summary = build_rewards_summary(
        profile,
        now=service.store.now(),
        timezone=current_app.config['LOYALTY_TIMEZONE']
    )
    return jsonify(summary)


# ==================== Enrollment & Access ====================

@loyalty_bp.route('/profiles/<uid>/enroll', methods=['POST'])
@require_staff
def enroll_profile(uid):
    """Grant loyalty access and start the member's point balances."""
    result = get_points_service().enroll(uid, granted_by=g.staff_email)
    return jsonify(result), 200 if result['already_enrolled'] else 201


@loyalty_bp.route('/profiles/<uid>/access/<capability>', methods=['POST'])
@require_staff
def grant_access(uid, capability):
    """Grant loyalty, instructor, team or management access."""
    result = get_points_service().grant_access(uid, capability, granted_by=g.staff_email)
    return jsonify(result)


@loyalty_bp.route('/profiles/<uid>/access/<capability>', methods=['DELETE'])
@require_staff
def revoke_access(uid, capability):
    """Revoke a capability grant."""
    result = get_points_service().revoke_access(uid, capability, revoked_by=g.staff_email)
    return jsonify(result)


# ==================== Points ====================

@loyalty_bp.route('/profiles/<uid>/earn', methods=['POST'])
@require_staff
def earn_points(uid):
    """
    Award points for a purchase.

    Request body:
    {
        "amounts": {"equipment": 250.00, "courses": 400.00}
    }
    """
    data = request.get_json(silent=True) or {}
    amounts = data.get('amounts')

    if not isinstance(amounts, dict) or not amounts:
        return bad_request('amounts is required', ErrorCode.MISSING_FIELD)

    result = get_points_service().earn_points(uid, amounts, processed_by=g.staff_email)
    current_app.logger.debug(f'Earn result for {uid}: {result}')
    return jsonify(result)


@loyalty_bp.route('/profiles/<uid>/redeem', methods=['POST'])
@require_staff
def redeem_points(uid):
    """
    Redeem points (100 points = $1).

    Request body:
    {
        "points": 500
    }
    """
    data = request.get_json(silent=True) or {}
    if data.get('points') is None:
        return bad_request('points is required', ErrorCode.MISSING_FIELD)

    result = get_points_service().redeem_points(uid, data['points'], processed_by=g.staff_email)
    return jsonify(result)


@loyalty_bp.route('/profiles/<uid>/adjust', methods=['POST'])
@require_staff
def adjust_points(uid):
    """
    Manually adjust a member's points.

    Request body:
    {
        "amount": 250,
        "reason": "Returned regulator",
        "type": "subtract",          # add | subtract
        "affect_lifetime": true      # optional, default false
    }
    """
    data = request.get_json(silent=True) or {}
    if data.get('amount') is None:
        return bad_request('amount is required', ErrorCode.MISSING_FIELD)

    result = get_points_service().adjust_points(
        uid,
        amount=data['amount'],
        reason=data.get('reason'),
        adjustment_type=data.get('type', 'add'),
        affect_lifetime=bool(data.get('affect_lifetime', False)),
        processed_by=g.staff_email
    )
    return jsonify(result)


# ==================== Gift Cards ====================

@loyalty_bp.route('/profiles/<uid>/gift-card-requests', methods=['POST'])
@require_staff
def request_gift_card(uid):
    """
    Submit a gift card request ($1 = 100 points).

    Request body:
    {
        "amount": 25
    }
    """
    data = request.get_json(silent=True) or {}
    if data.get('amount') is None:
        return bad_request('amount is required', ErrorCode.MISSING_FIELD)

    gift_card_request = get_points_service().request_gift_card(uid, data['amount'])
    return jsonify({
        'success': True,
        'message': 'Gift card request submitted successfully',
        'request': gift_card_request.to_dict()
    }), 201
