"""
Gang domain errors. Each carries a stable machine code and the HTTP status
the JSON views answer with.
"""


class GangError(Exception):
    code = 'gang_error'
    status = 400

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code:
            self.code = code


class ValidationError(GangError):
    code = 'invalid'
    status = 400


class Forbidden(GangError):
    code = 'forbidden'
    status = 403


class NotFound(GangError):
    code = 'not_found'
    status = 404


class Conflict(GangError):
    code = 'conflict'
    status = 409


class InsufficientFunds(GangError):
    code = 'insufficient_funds'
    status = 400


class InternalError(GangError):
    code = 'internal_error'
    status = 500


class NotAMember(NotFound):
    code = 'not_a_member'


class NotEligible(Forbidden):
    code = 'not_eligible'


class AlreadyInGang(Conflict):
    code = 'already_in_gang'


class AlreadyAtWar(Conflict):
    code = 'already_at_war'


class AlreadyJoined(Conflict):
    code = 'already_joined'


class OnCooldown(Conflict):
    code = 'on_cooldown'


class NotEnoughMembers(Conflict):
    code = 'not_enough_members'


class NotReady(Conflict):
    code = 'not_ready'


class NameTaken(Conflict):
    code = 'name_taken'
