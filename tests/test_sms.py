from __future__ import annotations

import datetime as dt
from unittest.mock import MagicMock

import pytest
import requests

from dental_clinic.booking import BookingNotice, clinic_message, notify_booking, patient_message
from dental_clinic.sms import NetgsmGateway, normalize_phone


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0532 123 45 67", "5321234567"),
        ("+90 (532) 123-45-67", "5321234567"),
        ("905321234567", "5321234567"),
        ("5321234567", "5321234567"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_normalize_phone_rejects_letters():
    with pytest.raises(ValueError):
        normalize_phone("0532-ABC")


def _response(status_code: int = 200, body: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {"code": "00", "jobid": "1"}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code}")
    return response


def _gateway(session: MagicMock, username: str | None = "user") -> NetgsmGateway:
    return NetgsmGateway(username=username, password="pass", msgheader="HEADER", session=session)


class TestNetgsmGateway:
    def test_success_posts_expected_payload(self):
        session = MagicMock()
        session.post.return_value = _response()

        assert _gateway(session).send("0532 123 45 67", "Merhaba") is True

        _, kwargs = session.post.call_args
        assert kwargs["auth"] == ("user", "pass")
        assert kwargs["json"] == {
            "msgheader": "HEADER",
            "encoding": "TR",
            "messages": [{"msg": "Merhaba", "no": "5321234567"}],
        }

    def test_provider_error_code(self):
        session = MagicMock()
        session.post.return_value = _response(body={"code": "30"})

        assert _gateway(session).send("5321234567", "x") is False

    def test_http_error(self):
        session = MagicMock()
        session.post.return_value = _response(status_code=500)

        assert _gateway(session).send("5321234567", "x") is False

    def test_network_error_does_not_raise(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("down")

        assert _gateway(session).send("5321234567", "x") is False

    def test_missing_credentials_skip_call(self):
        session = MagicMock()

        assert _gateway(session, username=None).send("5321234567", "x") is False
        session.post.assert_not_called()

    def test_malformed_number_skips_call(self):
        session = MagicMock()

        assert _gateway(session).send("telefono", "x") is False
        session.post.assert_not_called()


class TestBookingMessages:
    @pytest.fixture
    def notice(self) -> BookingNotice:
        return BookingNotice(
            appointment_id=1,
            patient_name="Ayse",
            patient_phone="05321234567",
            day=dt.date(2024, 5, 1),
            time_slot="10:00",
            doctor_name="Mehmet",
            clinic_name="Merkez",
            clinic_phone=None,
        )

    def test_patient_message(self, notice):
        text = patient_message(notice, "SIGN")

        assert "01.05.2024" in text
        assert "Merkez" in text
        assert "15 dk" in text
        assert text.endswith("SIGN")

    def test_clinic_message_has_patient_phone(self, notice):
        assert "05321234567" in clinic_message(notice, "SIGN")

    def test_no_clinic_phone_sends_one_message(self, notice):
        sms = MagicMock()
        sms.send.return_value = True

        assert notify_booking(sms, notice) is True
        assert sms.send.call_count == 1
