from __future__ import annotations

import os
from datetime import date

import requests
import streamlit as st

st.set_page_config(page_title="Clinica Dentale - Admin", layout="wide")

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")

STATUSES = ["pending", "confirmed", "cancelled"]
TIME_SLOTS = [f"{h:02d}:{m:02d}" for h in range(9, 18) for m in (0, 30)]


class ApiError(Exception):
    """Errore restituito dall'API nel formato {"error": "..."}."""


# HTTP client

def _check(r: requests.Response) -> dict | list:
    if r.status_code >= 400:
        try:
            message = r.json().get("error")
        except ValueError:
            message = None
        raise ApiError(message or f"HTTP {r.status_code}")
    return r.json()


def api_get(path: str, params: dict | None = None) -> dict | list:
    return _check(requests.get(f"{API_BASE}{path}", params=params, timeout=10))


def api_post(path: str, payload: dict) -> dict:
    return _check(requests.post(f"{API_BASE}{path}", json=payload, timeout=15))


def api_patch(path: str, payload: dict) -> dict:
    return _check(requests.patch(f"{API_BASE}{path}", json=payload, timeout=10))


def api_delete(path: str) -> dict:
    return _check(requests.delete(f"{API_BASE}{path}", timeout=10))


def api_login(username: str, password: str) -> bool:
    r = requests.post(
        f"{API_BASE}/api/admin/login",
        json={"username": username, "password": password},
        timeout=10,
    )
    if r.status_code == 401:
        return False
    _check(r)
    return True


def is_logged_in() -> bool:
    return bool(st.session_state.get("admin"))


# Sidebar login

with st.sidebar:
    st.header("Accesso")

    if not is_logged_in():
        u = st.text_input("Username", key="login_user")
        p = st.text_input("Password", type="password", key="login_pass")

        if st.button("Login", key="login_btn"):
            try:
                if api_login(u.strip().lower(), p):
                    st.session_state["admin"] = u.strip().lower()
                    st.success("Login effettuato.")
                    st.rerun()
                else:
                    st.error("Credenziali non valide.")
            except (requests.RequestException, ApiError) as e:
                st.error(str(e))
    else:
        st.write(f"Amministratore: **{st.session_state['admin']}**")
        if st.button("Logout", key="logout_btn"):
            st.session_state.pop("admin", None)
            st.rerun()

    st.divider()
    st.caption(f"API: {API_BASE}")


st.title("Clinica Dentale (pannello amministrativo)")

if not is_logged_in():
    st.warning("Sezione riservata. Effettua il login dalla sidebar.")
    st.stop()


# Dati base (pubblici)

@st.cache_data(ttl=10)
def load_clinics() -> list[dict]:
    return api_get("/api/clinics")


@st.cache_data(ttl=10)
def load_doctors(clinic_id: int | None = None) -> list[dict]:
    params = {"clinicId": clinic_id} if clinic_id else None
    return api_get("/api/doctors", params=params)


try:
    clinics = load_clinics()
except (requests.RequestException, ApiError) as e:
    st.error(f"API non raggiungibile o errore: {e}")
    st.stop()

tab1, tab2, tab3 = st.tabs(["Appuntamenti", "Disponibilità", "Nuova prenotazione"])


# TAB 1 - Appuntamenti

with tab1:
    st.subheader("Appuntamenti")

    try:
        appointments = api_get("/api/appointments")
    except (requests.RequestException, ApiError) as e:
        st.error(f"Errore caricamento appuntamenti: {e}")
        appointments = []

    only_active = st.checkbox("Nascondi annullati", value=True, key="app_only_active")
    if only_active:
        appointments = [a for a in appointments if a["status"] != "cancelled"]

    if not appointments:
        st.info("Nessun appuntamento.")

    for a in appointments:
        c1, c2, c3 = st.columns([5, 2, 1])
        c1.write(
            f"**{a['date']} {a['time_slot']}** | {a['name']} ({a['phone']}) | "
            f"Dr. {a.get('doctor_name') or '-'} @ {a.get('clinic_name') or '-'}"
        )
        new_status = c2.selectbox(
            "Stato",
            options=STATUSES,
            index=STATUSES.index(a["status"]) if a["status"] in STATUSES else 0,
            key=f"status_{a['id']}",
            label_visibility="collapsed",
        )
        if new_status != a["status"]:
            try:
                api_patch(f"/api/appointments/{a['id']}", {"status": new_status})
                st.rerun()
            except (requests.RequestException, ApiError) as e:
                st.error(str(e))
        if c3.button("Elimina", key=f"del_{a['id']}"):
            try:
                api_delete(f"/api/appointments/{a['id']}")
                st.rerun()
            except (requests.RequestException, ApiError) as e:
                st.error(str(e))


# TAB 2 - Disponibilità

with tab2:
    st.subheader("Slot occupati per medico e giorno")

    doctors = load_doctors()
    doctor = st.selectbox(
        "Medico",
        options=doctors,
        format_func=lambda d: d["name"],
        key="avail_doctor",
    )
    day = st.date_input("Giorno", value=date.today(), key="avail_day")

    if doctor:
        try:
            busy = api_get(f"/api/appointments/doctor/{doctor['id']}/date/{day.isoformat()}")["bookedSlots"]
            free = [s for s in TIME_SLOTS if s not in busy]
            st.write(f"Occupati: {', '.join(busy) or '-'}")
            st.write(f"Liberi: {', '.join(free) or '-'}")
        except (requests.RequestException, ApiError) as e:
            st.error(f"Errore disponibilità: {e}")


# TAB 3 - Nuova prenotazione

with tab3:
    st.subheader("Prenotazione manuale (telefonica)")

    clinic = st.selectbox(
        "Clinica",
        options=clinics,
        format_func=lambda c: c["name"],
        key="book_clinic",
    )
    doctors = load_doctors(clinic["id"]) if clinic else []
    doctor = st.selectbox(
        "Medico",
        options=doctors,
        format_func=lambda d: d["name"],
        key="book_doctor",
    )

    c1, c2 = st.columns(2)
    day = c1.date_input("Data", value=date.today(), key="book_day")
    slot = c2.selectbox("Orario", options=TIME_SLOTS, key="book_slot")
    name = c1.text_input("Nome paziente", key="book_name")
    phone = c2.text_input("Telefono", key="book_phone")

    if st.button("Conferma prenotazione", key="book_submit", disabled=not doctor):
        if not name.strip() or not phone.strip():
            st.error("Nome e telefono del paziente sono obbligatori.")
        else:
            payload = {
                "doctor_id": doctor["id"],
                "date": day.isoformat(),
                "time_slot": slot,
                "name": name.strip(),
                "phone": phone.strip(),
            }
            try:
                res = api_post("/api/appointments", payload)
                st.success(f"Appuntamento creato (ID: {res['id']}).")
                if res.get("smsStatus") != "success":
                    st.warning("Prenotazione salvata ma l'SMS non è stato inviato.")
            except (requests.RequestException, ApiError) as e:
                st.error(str(e))
