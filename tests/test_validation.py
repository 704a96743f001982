import pytest

from cashtrackr.api.validation import FieldErrors, check_amount, is_email, is_numeric, is_token, parse_id
from cashtrackr.budgets.crud import normalize_amount
from cashtrackr.config import DEFAULT_JWT_SECRET, Config, check_production_config
from cashtrackr.emails.mailer import ConsoleMailer, SmtpMailer, build_mailer
from cashtrackr.errors import ValidationFailed


@pytest.mark.parametrize(
    "value,ok",
    [
        ("jane@x.com", True),
        ("jane.doe+budget@x.com", True),
        ("jane@x", False),
        ("jane@x..com", False),
        ("jane@@x.com", False),
        ("", False),
        (None, False),
        ("a b@x.com", False),
    ],
)
def test_is_email(value, ok):
    assert is_email(value) is ok


@pytest.mark.parametrize("value,ok", [("123456", True), ("12345", False), ("1234567", False), ("12a456", False), (123456, False)])
def test_is_token(value, ok):
    assert is_token(value) is ok


@pytest.mark.parametrize("value,ok", [(10, True), (1.5, True), ("20.75", True), ("-3", True), ("abc", False), (True, False), ("1e3", False)])
def test_is_numeric(value, ok):
    assert is_numeric(value) is ok


def test_check_amount_one_error_per_field():
    errors = FieldErrors()
    check_amount(errors, "0", required_msg="Monto obligatorio")
    assert [e["msg"] for e in errors.errors] == ["El monto debe ser un número mayor que cero"]


@pytest.mark.parametrize(
    "value,msg",
    [
        (0.001, "El monto debe ser un número mayor que cero"),
        (1e300, "Cantidad no es un número válido"),
        ("9" * 40, "Cantidad no es un número válido"),
    ],
)
def test_check_amount_uses_the_stored_value(value, msg):
    errors = FieldErrors()
    check_amount(errors, value, required_msg="Monto obligatorio")
    assert [e["msg"] for e in errors.errors] == [msg]


def test_parse_id():
    assert parse_id("42", path="budget_id") == 42
    with pytest.raises(ValidationFailed) as exc:
        parse_id("abc", path="budget_id")
    assert exc.value.errors == [
        {"type": "field", "msg": "ID no válido", "path": "budget_id", "location": "params", "value": "abc"}
    ]


@pytest.mark.parametrize("value,stored", [(4000, "4000.00"), ("25.5", "25.50"), (0.125, "0.13"), (" 7 ", "7.00")])
def test_normalize_amount(value, stored):
    assert normalize_amount(value) == stored


class TestProductionConfig:
    def test_development_defaults_are_accepted(self):
        check_production_config(Config(APP_ENV="development"))

    def test_default_secret_refused(self):
        with pytest.raises(RuntimeError, match="AUTH_JWT_SECRET"):
            check_production_config(Config(APP_ENV="production", AUTH_JWT_SECRET=DEFAULT_JWT_SECRET, MAIL_HOST="smtp.x.com"))

    def test_mail_host_required(self):
        with pytest.raises(RuntimeError, match="MAIL_HOST"):
            check_production_config(Config(APP_ENV="production", AUTH_JWT_SECRET="s3cret", MAIL_HOST=None))


class TestBuildMailer:
    def test_console_in_development(self):
        assert isinstance(build_mailer(Config(APP_ENV="development", MAIL_HOST=None)), ConsoleMailer)

    def test_smtp_when_configured(self):
        assert isinstance(build_mailer(Config(APP_ENV="development", MAIL_HOST="smtp.x.com")), SmtpMailer)

    def test_production_needs_smtp(self):
        with pytest.raises(RuntimeError):
            build_mailer(Config(APP_ENV="production", MAIL_HOST=None))
