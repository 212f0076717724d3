"""
JSON endpoints over the gang facade. The acting user is always request.user.
"""
import functools
import json
import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from .services import facade
from .services.errors import GangError, ValidationError

logger = logging.getLogger(__name__)


def _body(request) -> dict:
    # Support both JSON and form-encoded
    if request.content_type and 'application/json' in request.content_type:
        try:
            body = json.loads(request.body or b"{}")
        except ValueError:
            raise ValidationError('Malformed JSON body', code='bad_json')
        if not isinstance(body, dict):
            raise ValidationError('JSON body must be an object', code='bad_json')
        return body
    return request.POST.dict()


def _parse_int(body: dict, name: str) -> int:
    raw = body.get(name)
    if raw is None or raw == '':
        raise ValidationError(f'{name} is required', code='missing_field')
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    # Form values arrive as strings; fractions and exponents are rejected, never truncated
    if isinstance(raw, str) and raw.strip().lstrip('-').isdigit():
        return int(raw.strip())
    raise ValidationError(f'{name} must be a whole number', code='invalid_amount')


def _require(body: dict, name: str):
    value = body.get(name)
    if value is None or value == '':
        raise ValidationError(f'{name} is required', code='missing_field')
    return value


def gang_api(view):
    """Render the view's return value as a success envelope and GangErrors as failures."""
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            data, status = view(request, *args, **kwargs)
        except GangError as ge:
            return JsonResponse(
                {"success": False, "ok": False, "error": str(ge), "code": ge.code},
                status=ge.status,
            )
        except Exception:
            logger.exception(f"Unhandled error in {view.__name__}")
            return JsonResponse(
                {"success": False, "ok": False, "error": "Internal server error", "code": "internal_error"},
                status=500,
            )
        return JsonResponse({"success": True, "ok": True, "data": data}, status=status)
    return wrapper


# ===============================
# PLAYER / GANGS
# ===============================

@login_required
@require_http_methods(["GET"])
@gang_api
def me(request):
    return facade.player_summary(request.user.id), 200


@login_required
@require_http_methods(["GET", "POST"])
@gang_api
def gangs(request):
    if request.method == "GET":
        return {"gangs": facade.list_gangs()}, 200
    body = _body(request)
    gang = facade.create_gang(
        request.user.id, _require(body, "name"), _require(body, "tag"), body.get("description", ""),
    )
    return gang, 201


@login_required
@require_http_methods(["GET", "PATCH", "POST"])
@gang_api
def gang_detail(request, gang_id):
    if request.method == "GET":
        return facade.gang_details(gang_id), 200
    body = _body(request)
    gang = facade.update_gang(
        request.user.id, gang_id, description=body.get("description"), logo=body.get("logo"),
    )
    return gang, 200


@login_required
@require_http_methods(["POST"])
@gang_api
def join_gang(request, gang_id):
    return facade.join_gang(request.user.id, gang_id), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def leave_gang(request, gang_id):
    return facade.leave_gang(request.user.id, gang_id), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def disband_gang(request, gang_id):
    return facade.disband_gang(request.user.id, gang_id), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def kick_member(request, gang_id, user_id):
    return facade.kick_member(request.user.id, gang_id, user_id), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def set_member_role(request, gang_id, user_id):
    body = _body(request)
    return facade.set_member_role(request.user.id, gang_id, user_id, _require(body, "role")), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def promote_member(request, gang_id, user_id):
    return facade.promote_member(request.user.id, gang_id, user_id), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def demote_member(request, gang_id, user_id):
    return facade.demote_member(request.user.id, gang_id, user_id), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def transfer_leadership(request, gang_id, user_id):
    return facade.transfer_leadership(request.user.id, gang_id, user_id), 200


# ===============================
# TREASURY
# ===============================

@login_required
@require_http_methods(["POST"])
@gang_api
def deposit(request, gang_id):
    amount = _parse_int(_body(request), "amount")
    return facade.deposit_to_bank(request.user.id, gang_id, amount), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def withdraw(request, gang_id):
    amount = _parse_int(_body(request), "amount")
    return facade.withdraw_from_bank(request.user.id, gang_id, amount), 200


# ===============================
# TERRITORY AND WARS
# ===============================

@login_required
@require_http_methods(["GET"])
@gang_api
def territories(request):
    return {"territories": facade.list_territories()}, 200


@login_required
@require_http_methods(["GET"])
@gang_api
def territory_detail(request, territory_id):
    return facade.territory_detail(territory_id), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def attack_territory(request, gang_id, territory_id):
    result = facade.attack_territory(request.user.id, gang_id, territory_id)
    return result, 201 if result["war"] else 200


@login_required
@require_http_methods(["GET"])
@gang_api
def wars_list(request):
    return {"wars": facade.list_wars()}, 200


@login_required
@require_http_methods(["GET"])
@gang_api
def active_wars(request):
    return {"wars": facade.list_wars(active_only=True)}, 200


@login_required
@require_http_methods(["GET"])
@gang_api
def war_detail(request, war_id):
    return facade.war_detail(war_id), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def join_war(request, war_id):
    return facade.join_war(request.user.id, war_id), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def contribute_to_war(request, war_id):
    amount = _parse_int(_body(request), "amount")
    return facade.contribute_to_war(request.user.id, war_id, amount), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def end_war(request, war_id):
    winner_id = _require(_body(request), "winner_gang_id")
    return facade.end_war(war_id, winner_id, user_id=request.user.id), 200


# ===============================
# MISSIONS
# ===============================

@login_required
@require_http_methods(["GET"])
@gang_api
def gang_missions(request, gang_id):
    return {"missions": facade.available_missions(gang_id)}, 200


@login_required
@require_http_methods(["POST"])
@gang_api
def start_mission(request, gang_id, mission_id):
    return facade.start_mission(gang_id, mission_id, user_id=request.user.id), 201


@login_required
@require_http_methods(["GET"])
@gang_api
def mission_attempt(request, attempt_id):
    return facade.mission_attempt(attempt_id), 200


@login_required
@require_http_methods(["POST"])
@gang_api
def collect_mission(request, attempt_id):
    return facade.collect_mission_rewards(attempt_id, user_id=request.user.id), 200
