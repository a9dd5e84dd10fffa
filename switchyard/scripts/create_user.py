"""
Create a user (e.g. first admin). Run from project root:
  python -m switchyard.scripts.create_user USERNAME PASSWORD [--firstname F] [--lastname L] [--admin]
Example:
  python -m switchyard.scripts.create_user admin your-secure-password --admin
"""
import argparse
import logging
import sys

from switchyard.core.config import settings
from switchyard.core.database import SessionLocal
from switchyard.core.exceptions import RoleNotFoundError, SwitchyardError
from switchyard.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    is_valid_username,
)
from switchyard.schemas.permissions import (
    WILDCARD,
    ActionType,
    AdminPermission,
    ResourcePermission,
    ResourceType,
    SectionType,
    SubjectPermissions,
)
from switchyard.services.roles import PermissionStore
from switchyard.services.users import UserDirectory

ADMIN_ROLE_CODE = "admin"

# Every resource in every namespace/project, and every admin section.
ADMIN_PERMISSIONS = SubjectPermissions(
    resources=[
        ResourcePermission(
            namespace=WILDCARD,
            project=WILDCARD,
            resource=ResourceType.ALL,
            action=ActionType.ALL,
        )
    ],
    admin=[AdminPermission(section=SectionType.ALL, action=ActionType.ALL)],
)


def grant_admin(store: PermissionStore, user_id: int) -> None:
    """Bind the user to the shared admin role, creating it with full permissions if missing."""
    try:
        role = store.get_role(ADMIN_ROLE_CODE)
    except RoleNotFoundError:
        role = store.create_role(ADMIN_ROLE_CODE)
        store.set_role_permissions(role.id, ADMIN_PERMISSIONS)
    store.add_user_to_role(user_id, role.id)


def main() -> int:
    logging.basicConfig(level=settings.LOG_LEVEL)
    parser = argparse.ArgumentParser(description="Create a Switchyard user (no registration UI).")
    parser.add_argument("username", help=f"Username ({USERNAME_MIN_LEN}-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("--firstname", default="")
    parser.add_argument("--lastname", default="")
    parser.add_argument("--admin", action="store_true", help="Grant the full 'admin' role")
    args = parser.parse_args()

    username = args.username.strip()
    if not is_valid_username(username):
        print(f"Invalid username: use letters, digits, _ or -, or an email ({USERNAME_MIN_LEN}-{USERNAME_MAX_LEN} chars).", file=sys.stderr)
        return 1
    if len(args.password) < PASSWORD_MIN_LEN or len(args.password) > PASSWORD_MAX_LEN:
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        user = UserDirectory(db).create(
            username,
            args.password,
            firstname=args.firstname,
            lastname=args.lastname,
        )
        if args.admin:
            grant_admin(PermissionStore(db), user.id)
        print(f"Created user '{username}'{' with the admin role' if args.admin else ''}.")
        return 0
    except SwitchyardError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
