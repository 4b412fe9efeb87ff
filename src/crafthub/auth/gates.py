"""Access gates — pure predicates over verified claims.

Learn: A gate is any callable taking Claims that either returns
(pass) or raises Forbidden (reject). Gates do no I/O, so they can be
composed in any order; `run_gates` evaluates them left to right and
the first failure wins.

Routes attach them through crafthub.auth.dependencies.require(), which
always runs authentication first.
"""

from typing import Callable, Iterable

from crafthub.auth.errors import Forbidden
from crafthub.auth.jwt import Claims
from crafthub.db.models import UserRole

Gate = Callable[[Claims], None]


def role_gate(*allowed: UserRole, message: str | None = None) -> Gate:
    """Build a gate that admits only the given roles."""
    allowed_set = frozenset(UserRole(r) for r in allowed)
    names = ", ".join(sorted(r.value for r in allowed_set))
    msg = message or f"Access denied. Requires role: {names}."

    def gate(claims: Claims) -> None:
        if claims.role not in allowed_set:
            raise Forbidden(msg)

    gate.__name__ = f"role_gate[{names}]"
    return gate


artisan_only = role_gate(UserRole.ARTISAN, message="Access denied. Artisan only.")
customer_only = role_gate(UserRole.CUSTOMER, message="Access denied. Customer only.")
admin_only = role_gate(UserRole.ADMIN, message="Access denied. Admin only.")


def require_verified_email(claims: Claims) -> None:
    if not claims.is_email_verified:
        raise Forbidden("Email verification required.")


def require_verified_phone(claims: Claims) -> None:
    if not claims.is_phone_verified:
        raise Forbidden("Phone verification required.")


def require_profile_complete(claims: Claims) -> None:
    if not claims.profile_complete:
        raise Forbidden("Profile completion required.")


def run_gates(claims: Claims, gates: Iterable[Gate]) -> Claims:
    """Apply gates in order. Returns the claims when all pass."""
    for gate in gates:
        gate(claims)
    return claims
