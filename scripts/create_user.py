
import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userservice.database import Database, DatabaseError, resolve_database_path
from userservice.errors import ConflictError, ServiceError, ValidationError
from userservice.users import UserResource


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user in the directory")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to USER_SERVICE_DB_PATH or data/users.sqlite3)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    db_env = args.db_path or os.getenv("USER_SERVICE_DB_PATH")
    db_path = resolve_database_path(db_env)

    database = Database(db_path)
    try:
        database.initialize()
        user = UserResource(database).create_user({"name": args.name, "email": args.email})
    except ValidationError as exc:
        for error in exc.errors:
            print(f"Error: {error.field}: {error.message}", file=sys.stderr)
        return 1
    except ConflictError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    except ServiceError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 2
    except DatabaseError as exc:
        print(f"Error: could not open database at {db_path}: {exc}", file=sys.stderr)
        return 2
    finally:
        database.close()

    print(f"Created user #{user.id}: {user.name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
