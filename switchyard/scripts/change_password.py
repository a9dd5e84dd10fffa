"""
Set a new password for an existing user. Run from project root:
  python -m switchyard.scripts.change_password USERNAME NEW_PASSWORD
"""
import argparse
import logging
import sys

from switchyard.core.config import settings
from switchyard.core.database import SessionLocal
from switchyard.core.exceptions import SwitchyardError
from switchyard.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from switchyard.services.users import UserDirectory


def main() -> int:
    logging.basicConfig(level=settings.LOG_LEVEL)
    parser = argparse.ArgumentParser(description="Change a Switchyard user's password.")
    parser.add_argument("username")
    parser.add_argument("password", help=f"New password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    args = parser.parse_args()

    if len(args.password) < PASSWORD_MIN_LEN or len(args.password) > PASSWORD_MAX_LEN:
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        users = UserDirectory(db)
        user = users.find_by_username(args.username.strip())
        users.update_password(user.id, args.password)
        print(f"Password updated for '{user.username}'.")
        return 0
    except SwitchyardError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
