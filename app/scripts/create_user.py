"""
Create a user (e.g. the first admin; self-registration only creates READERs). Run from project root:
  python -m app.scripts.create_user EMAIL PASSWORD NAME [role]
Example:
  python -m app.scripts.create_user admin@example.com your-secure-password "Admin User" ADMIN
"""
import argparse
import logging
import sys

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic import EmailStr

from app.core.config import get_settings
from app.core.context import AppContext
from app.core.errors import Conflict
from app.core.logging_config import configure_logging
from app.core.roles import Role
from app.core.security import NAME_MIN_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)


def main(argv: list[str] | None = None, context: AppContext | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a blog user with any role.")
    parser.add_argument("email", help="Email address (unique)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("name", help=f"Display name (at least {NAME_MIN_LEN} chars)")
    parser.add_argument(
        "role", nargs="?", default=Role.READER.value, choices=[r.value for r in Role]
    )
    args = parser.parse_args(argv)

    try:
        email = str(_email_adapter.validate_python(args.email.strip()))
    except PydanticValidationError:
        print("Invalid email address.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1
    name = args.name.strip()
    if len(name) < NAME_MIN_LEN:
        print(f"Name must be at least {NAME_MIN_LEN} characters.", file=sys.stderr)
        return 1

    owns_context = context is None
    if context is None:
        settings = get_settings()
        configure_logging(settings)
        context = AppContext(settings)
        context.startup()
    try:
        with context.open_stores() as stores:
            stores.users.create(email=email, password=args.password, name=name, role=Role(args.role))
    except Conflict:
        print(f"User '{email}' already exists.", file=sys.stderr)
        return 1
    finally:
        if owns_context:
            context.shutdown()
    print(f"Created user '{email}' with role '{args.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
