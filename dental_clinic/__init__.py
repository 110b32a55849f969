"""
Backend applicativo Clinica Dentale.

Struttura:
- config.py     : impostazioni da variabili d'ambiente / .env
- db.py         : engine, sessioni SQLAlchemy e mappatura degli errori
- models.py     : modelli ORM (cliniche, medici, contenuti, appuntamenti)
- migrations.py : migrazioni versionate dello schema
- media.py      : archivio immagini caricate (/uploads)
- sms.py        : gateway SMS Netgsm
- services.py   : CRUD delle risorse del sito
- booking.py    : prenotazioni, disponibilità e notifiche
- api_main.py   : applicazione FastAPI (routers/ per gli endpoint)
- cli.py        : comandi di manutenzione
"""
