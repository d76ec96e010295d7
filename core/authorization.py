# core/authorization.py
"""
Authorization Guard.

``authorize`` answers "may this caller perform this action on this resource?"
for every mutating workflow operation. It only looks at the documents handed
to it and never touches the database, so the workflows fetch the review /
reservation and its restaurant first and then ask.

Rules that depend on entity state rather than identity (a reservation that is
no longer pending, a review that is not approved, a duplicate review) are the
workflows' business and surface as validation/conflict errors, not here.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional
from fastapi import Depends
from core.dependencies import get_current_user, CurrentUser
from core.exceptions import AuthorizationError
from settings.config import settings
from utils.logger import get_logger

logger = get_logger("Authorization")

CUSTOMER = "customer"
RESTAURANT = "restaurant"

CUSTOMER_RESERVATION_FIELDS = {"date", "time", "guests", "special_requests"}
OWNER_RESERVATION_FIELDS = {"status"}
AUTHOR_REVIEW_FIELDS = {"rating", "comment", "images"}
OWNER_REVIEW_FIELDS = {"reply", "status"}

class Action(str, Enum):
    RESERVATION_CREATE = "reservation:create"
    RESERVATION_LIST = "reservation:list"
    RESERVATION_READ = "reservation:read"
    RESERVATION_UPDATE = "reservation:update"
    REVIEW_CREATE = "review:create"
    REVIEW_UPDATE = "review:update"
    REVIEW_MODERATE = "review:moderate"
    REVIEW_DELETE = "review:delete"
    REVIEW_HELPFUL = "review:helpful"
    REVIEW_REPORT = "review:report"
    RESTAURANT_CREATE = "restaurant:create"
    RESTAURANT_UPDATE = "restaurant:update"
    RESTAURANT_DELETE = "restaurant:delete"
    MENU_MANAGE = "menu:manage"
    FAVORITE_CREATE = "favorite:create"
    FAVORITE_LIST = "favorite:list"
    FAVORITE_DELETE = "favorite:delete"

@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self):
        return self.allowed

ALLOW = Decision(True)

def deny(reason: str) -> Decision:
    return Decision(False, reason)

def is_owner(caller: CurrentUser, restaurant: Optional[dict]) -> bool:
    return (
        caller.role == RESTAURANT
        and restaurant is not None
        and restaurant.get("owner_id") == caller.id
    )

def _extra_fields(fields: Optional[Iterable[str]], permitted: set) -> set:
    return set(fields or ()) - permitted

def _reservation_update(caller, reservation, restaurant, fields) -> Decision:
    if caller.role == CUSTOMER:
        if reservation.get("customer_id") != caller.id:
            return deny("Not authorized to update this reservation")
        extra = _extra_fields(fields, CUSTOMER_RESERVATION_FIELDS)
        if extra:
            return deny(f"Customers cannot change: {', '.join(sorted(extra))}")
        return ALLOW
    if caller.role == RESTAURANT:
        if not is_owner(caller, restaurant):
            return deny("Not authorized to update this reservation")
        if _extra_fields(fields, OWNER_RESERVATION_FIELDS):
            return deny("Restaurant owners can only update the reservation status")
        return ALLOW
    return deny("Not authorized to update this reservation")

def _review_update(caller, review, restaurant, fields) -> Decision:
    if caller.role == CUSTOMER:
        if review.get("customer_id") != caller.id:
            return deny("Not authorized to update this review")
        extra = _extra_fields(fields, AUTHOR_REVIEW_FIELDS)
        if extra:
            return deny(f"Reviewers cannot change: {', '.join(sorted(extra))}")
        return ALLOW
    if caller.role == RESTAURANT:
        if not is_owner(caller, restaurant):
            return deny("Not authorized to update this review")
        if _extra_fields(fields, OWNER_REVIEW_FIELDS):
            return deny("Restaurant owners can only update the reply and status of a review")
        return ALLOW
    return deny("Not authorized to update this review")

def authorize(
    caller: CurrentUser,
    action: Action,
    resource: Optional[dict] = None,
    restaurant: Optional[dict] = None,
    fields: Optional[Iterable[str]] = None,
) -> Decision:
    """
    Decide whether ``caller`` may perform ``action``.

    ``resource`` is the reservation / review / favorite being acted on,
    ``restaurant`` the restaurant it belongs to (or the restaurant itself for
    restaurant and menu actions), ``fields`` the names of the fields an update
    is trying to change.
    """
    if action == Action.RESERVATION_CREATE:
        if caller.role != CUSTOMER:
            return deny("Only customers can create reservations")
        return ALLOW

    if action == Action.RESERVATION_LIST:
        if caller.role == CUSTOMER:
            return ALLOW
        if caller.role == RESTAURANT:
            # narrowing to an explicit restaurant must still be one they own
            if restaurant is not None and not is_owner(caller, restaurant):
                return deny("Restaurant not owned by you")
            return ALLOW
        return deny("Not authorized to list reservations")

    if action == Action.RESERVATION_READ:
        if caller.role == CUSTOMER and resource.get("customer_id") == caller.id:
            return ALLOW
        if is_owner(caller, restaurant):
            return ALLOW
        return deny("Not authorized to view this reservation")

    if action == Action.RESERVATION_UPDATE:
        return _reservation_update(caller, resource, restaurant, fields)

    if action == Action.REVIEW_CREATE:
        if caller.role != CUSTOMER:
            return deny("Only customers can create reviews")
        return ALLOW

    if action == Action.REVIEW_UPDATE:
        return _review_update(caller, resource, restaurant, fields)

    if action == Action.REVIEW_MODERATE:
        if caller.role != RESTAURANT:
            return deny("Only restaurant owners can moderate reviews")
        if not is_owner(caller, restaurant):
            return deny("Not authorized to moderate this review")
        return ALLOW

    if action == Action.REVIEW_DELETE:
        if caller.role == CUSTOMER and resource.get("customer_id") == caller.id:
            return ALLOW
        if is_owner(caller, restaurant):
            return ALLOW
        return deny("Not authorized to delete this review")

    if action == Action.REVIEW_HELPFUL:
        if resource.get("customer_id") == caller.id:
            return deny("Cannot mark your own review as helpful")
        return ALLOW

    if action == Action.REVIEW_REPORT:
        if not settings.ALLOW_SELF_REPORT and resource.get("customer_id") == caller.id:
            return deny("Cannot report your own review")
        return ALLOW

    if action == Action.RESTAURANT_CREATE:
        if caller.role != RESTAURANT:
            return deny("Only restaurant owners can create restaurants")
        return ALLOW

    if action in (Action.RESTAURANT_UPDATE, Action.RESTAURANT_DELETE):
        if not is_owner(caller, restaurant):
            verb = "update" if action == Action.RESTAURANT_UPDATE else "delete"
            return deny(f"Not authorized to {verb} this restaurant")
        return ALLOW

    if action == Action.MENU_MANAGE:
        if not is_owner(caller, restaurant):
            return deny("Not authorized to update this restaurant's menu")
        return ALLOW

    if action in (Action.FAVORITE_CREATE, Action.FAVORITE_LIST):
        if caller.role != CUSTOMER:
            return deny("Only customers can manage favorites")
        return ALLOW

    if action == Action.FAVORITE_DELETE:
        if caller.role != CUSTOMER:
            return deny("Only customers can remove favorites")
        if resource is not None and resource.get("customer_id") != caller.id:
            return deny("Favorite not owned by you")
        return ALLOW

    return deny(f"Unknown action: {action}")

def ensure_allowed(caller: CurrentUser, action: Action, resource=None, restaurant=None, fields=None) -> None:
    decision = authorize(caller, action, resource=resource, restaurant=restaurant, fields=fields)
    if not decision.allowed:
        logger.warning(f"Forbidden: {caller.email} ({caller.role}) denied {action.value}: {decision.reason}")
        raise AuthorizationError(decision.reason)

def require_role(*allowed_roles):
    async def _dependency(current_user: CurrentUser = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            logger.warning(f"Forbidden: {current_user.email} role {current_user.role} not in allowed {allowed_roles}")
            raise AuthorizationError(f"Access denied. Requires one of roles: {', '.join(allowed_roles)}")
        return current_user
    return _dependency
