from __future__ import annotations

import argparse
import getpass
from datetime import date

import uvicorn

from . import booking, services
from .api_main import configure_logging
from .auth_service import set_admin_password
from .config import Settings, load_settings
from .db import Database
from .errors import ClinicError
from .seed import init_schema
from .sms import NetgsmGateway


def _database(settings: Settings) -> Database:
    return Database(settings.database_url, echo=settings.sql_echo)


def cmd_init(args: argparse.Namespace, settings: Settings) -> None:
    db = _database(settings)
    init_schema(db, settings)
    db.dispose()
    print("DB inizializzato e amministratore di default verificato.")


def cmd_serve(args: argparse.Namespace, settings: Settings) -> None:
    uvicorn.run(
        "dental_clinic.api_main:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )


def cmd_list(args: argparse.Namespace, settings: Settings) -> None:
    db = _database(settings)
    if args.entity == "clinics":
        for c in services.list_clinics(db):
            print(f"{c['id']} | {c['name']} | {c['phone'] or '-'}")
    elif args.entity == "doctors":
        for d in services.list_doctors(db):
            print(f"{d['id']} | {d['name']} | clinica {d['clinic_id']}")
    elif args.entity == "appointments":
        for a in booking.list_appointments(db):
            print(
                f"{a['id']} | {a['date']} {a['time_slot']} | {a['name']} ({a['phone']}) | "
                f"Dr. {a['doctor_name'] or '-'} @ {a['clinic_name'] or '-'} | {a['status']}"
            )
    elif args.entity == "treatments":
        for t in services.list_treatments(db):
            print(f"{t['id']} | {t['slug']} | {t['title']}")
    db.dispose()


def cmd_book(args: argparse.Namespace, settings: Settings) -> None:
    db = _database(settings)
    result = booking.book_appointment(
        db,
        NetgsmGateway.from_settings(settings),
        doctor_id=args.doctor_id,
        day=date.fromisoformat(args.date),  # formato: 2026-01-14
        time_slot=args.time_slot,
        name=args.name,
        phone=args.phone,
        signature=settings.sms_signature,
    )
    db.dispose()
    print(f"Appuntamento ID: {result['id']} (SMS: {result['smsStatus']})")


def cmd_cancel(args: argparse.Namespace, settings: Settings) -> None:
    db = _database(settings)
    booking.update_status(db, args.appointment_id, "cancelled")
    db.dispose()
    print("Annullato.")


def cmd_set_admin_password(args: argparse.Namespace, settings: Settings) -> None:
    password = args.password or getpass.getpass("Nuova password: ")
    db = _database(settings)
    admin_id = set_admin_password(db, args.username, password)
    db.dispose()
    print(f"Password aggiornata per l'amministratore {admin_id}.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dental_clinic_cli", description="CLI Clinica Dentale (gestione e manutenzione)")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Applica le migrazioni e crea l'admin di default")
    p_init.set_defaults(func=cmd_init)

    p_serve = sub.add_parser("serve", help="Avvia l'API con uvicorn")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.add_argument("--reload", action="store_true")
    p_serve.set_defaults(func=cmd_serve)

    p_list = sub.add_parser("list", help="Lista entità")
    p_list.add_argument("entity", choices=["clinics", "doctors", "appointments", "treatments"])
    p_list.set_defaults(func=cmd_list)

    p_book = sub.add_parser("book", help="Prenota appuntamento (invia anche gli SMS)")
    p_book.add_argument("--doctor-id", type=int, required=True)
    p_book.add_argument("--date", required=True, help="ISO date es: 2026-01-14")
    p_book.add_argument("--time-slot", required=True, help="es: 10:30")
    p_book.add_argument("--name", required=True)
    p_book.add_argument("--phone", required=True)
    p_book.set_defaults(func=cmd_book)

    p_cancel = sub.add_parser("cancel", help="Annulla appuntamento (stato cancelled)")
    p_cancel.add_argument("--appointment-id", type=int, required=True)
    p_cancel.set_defaults(func=cmd_cancel)

    p_pwd = sub.add_parser("set-admin-password", help="Crea l'amministratore o ne reimposta la password")
    p_pwd.add_argument("--username", default="admin")
    p_pwd.add_argument("--password", default=None, help="Se omessa viene chiesta a terminale")
    p_pwd.set_defaults(func=cmd_set_admin_password)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)
    try:
        args.func(args, settings)
    except ClinicError as exc:
        print(f"Errore: {exc.message}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
