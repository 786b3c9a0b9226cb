"""
Scheduled Tasks API endpoints.

Lets staff preview or trigger the yearly loyalty check by hand. The check
normally runs from the background scheduler on January 1st.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..extensions import get_profile_store
from ..middleware.staff_auth import require_staff
from ..services.yearly_check import YearlyLoyaltyCheck
from ..utils.errors import ErrorCode, bad_request

scheduled_tasks_bp = Blueprint('scheduled_tasks', __name__)


def _yearly_check() -> YearlyLoyaltyCheck:
    return YearlyLoyaltyCheck(
        get_profile_store(),
        timezone=current_app.config['LOYALTY_TIMEZONE']
    )


# ==================== YEARLY LOYALTY CHECK ====================

@scheduled_tasks_bp.route('/yearly-check/preview', methods=['GET'])
@require_staff
def preview_yearly_check():
    """
    Preview the yearly check without writing.

    Query params:
        year: Year to evaluate (defaults to the current year)
    """
    year = request.args.get('year')
    if year is not None:
        try:
            year = int(year)
        except ValueError:
            return bad_request('year must be an integer', ErrorCode.VALIDATION_ERROR)

    result = _yearly_check().run(current_year=year, dry_run=True)

    return jsonify(result)


@scheduled_tasks_bp.route('/yearly-check/run', methods=['POST'])
@require_staff
def run_yearly_check():
    """
    Manually trigger the yearly check.

    Reductions already recorded for the year are not applied twice, so a
    re-run only touches members that were not reduced yet.
    """
    data = request.get_json(silent=True) or {}
    year = data.get('year')
    if year is not None and (isinstance(year, bool) or not isinstance(year, int)):
        return bad_request('year must be an integer', ErrorCode.VALIDATION_ERROR)

    current_app.logger.info(f'Yearly loyalty check triggered by {g.staff_email}')
    result = _yearly_check().run(current_year=year, dry_run=False)

    return jsonify({
        'success': True,
        'message': (
            f"Reduced {result['reduced']} members by "
            f"{result['total_points_reduced']} points for {result['year']}"
        ),
        'result': result
    })
