"""Utility script to add a directory user and print a bearer token for it."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from app.domain.entities import Identity
from app.domain.entities.identity import ROLES
from app.infrastructure.database import SessionLocal, initialize_database
from app.infrastructure.models import UserModel
from app.infrastructure.security import create_access_token


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the seeded user."""

    parser = argparse.ArgumentParser(
        description="Create a directory user for local testing of the notification API.",
    )
    parser.add_argument("--id", type=int, required=True, help="Identificador del usuario")
    parser.add_argument("--role", choices=ROLES, default="student", help="Rol del usuario")
    parser.add_argument("--first-name", default="Usuario", help="Nombre del usuario")
    parser.add_argument("--last-name", default="", help="Apellido del usuario")
    parser.add_argument("--department", type=int, default=1, help="Departamento")
    parser.add_argument("--year", type=int, default=None, help="Año de estudio (estudiantes)")
    parser.add_argument("--section", default=None, help="Sección (estudiantes)")
    parser.add_argument("--academic-year", default=None, help="Año académico (estudiantes)")
    return parser.parse_args()


def main() -> None:
    """Insert or update the user and print a token carrying its identity."""

    args = parse_args()

    initialize_database()

    session = SessionLocal()
    try:
        user = session.get(UserModel, args.id) or UserModel(id=args.id)
        user.first_name = args.first_name
        user.last_name = args.last_name
        user.role = args.role
        user.department_id = args.department
        user.year = args.year
        user.section = args.section
        user.academic_year_id = args.academic_year
        user.is_active = True
        session.add(user)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Error al guardar el usuario en la base de datos: {exc}") from exc
    finally:
        session.close()

    identity = Identity(
        user_id=args.id,
        role=args.role,
        department_id=args.department,
        name=f"{args.first_name} {args.last_name}".strip(),
    )
    print(
        "Usuario listo:\n"
        f"  ID: {identity.user_id}\n"
        f"  Rol: {identity.role}\n"
        f"  Token: {create_access_token(identity)}"
    )


if __name__ == "__main__":
    main()
