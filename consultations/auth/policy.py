"""Who may perform which appointment operation.

Every lifecycle operation asks ``can_act`` before touching a record. Cancel,
review and payment operations belong to the booking's owner alone; room,
token, call-status and read access also admit administrators; the status
override is for administrators only.
"""

from enum import Enum

ROLE_ADMIN = 'admin'
ROLE_CLIENT = 'client'


class Operation(str, Enum):
    VIEW = 'view'
    CANCEL = 'cancel'
    REVIEW = 'review'
    PAY = 'pay'
    CREATE_ROOM = 'create_room'
    ISSUE_TOKEN = 'issue_token'
    CALL_STATUS = 'call_status'
    OVERRIDE_STATUS = 'override_status'


OWNER_ONLY = frozenset({Operation.CANCEL, Operation.REVIEW, Operation.PAY})
OWNER_OR_ADMIN = frozenset({
    Operation.VIEW,
    Operation.CREATE_ROOM,
    Operation.ISSUE_TOKEN,
    Operation.CALL_STATUS,
})
ADMIN_ONLY = frozenset({Operation.OVERRIDE_STATUS})


def can_act(role: str | None, owner_id: int | None, acting_user_id: int | None, operation: Operation) -> bool:
    is_owner = owner_id is not None and owner_id == acting_user_id
    is_admin = role == ROLE_ADMIN

    if operation in OWNER_ONLY:
        return is_owner
    if operation in OWNER_OR_ADMIN:
        return is_owner or is_admin
    if operation in ADMIN_ONLY:
        return is_admin
    return False
