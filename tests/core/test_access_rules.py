"""Access rule helpers: pure tests for permission maps and audit redaction.

Invariants:
    - normalize_modules coerces every page leaf to {read: bool, write: bool}
    - sanitize redacts sensitive keys at any depth without mutating input
    - split_list accepts lists and delimited strings alike
"""

from atreo.services.audit_service import REDACTED, sanitize
from atreo.services.permission_service import ACCOUNTANT_MODULES, normalize_modules
from atreo.services.user_service import split_list


# --- normalize_modules --------------------------------------------------------

def test_normalize_modules_coerces_leaves():
    modules = {"invoices": {"pages": {"list": {"read": 1, "write": None}}}}
    assert normalize_modules(modules) == {
        "invoices": {"pages": {"list": {"read": True, "write": False}}}
    }


def test_normalize_modules_keeps_module_without_pages():
    assert normalize_modules({"tools": {}}) == {"tools": {"pages": {}}}


def test_normalize_modules_handles_none():
    assert normalize_modules(None) == {}


def test_accountant_allowlist_is_read_only_modules():
    assert "invoices" in ACCOUNTANT_MODULES
    assert "admins" not in ACCOUNTANT_MODULES


# --- sanitize -----------------------------------------------------------------

def test_sanitize_redacts_nested_keys():
    data = {"password": "x", "profile": {"api_key": "k", "name": "n"}, "items": [{"token": "t"}]}
    cleaned = sanitize(data)
    assert cleaned["password"] == REDACTED
    assert cleaned["profile"] == {"api_key": REDACTED, "name": "n"}
    assert cleaned["items"] == [{"token": REDACTED}]


def test_sanitize_leaves_input_untouched():
    data = {"password": "x"}
    sanitize(data)
    assert data == {"password": "x"}


def test_sanitize_passes_scalars_through():
    assert sanitize("plain") == "plain"


# --- split_list ---------------------------------------------------------------

def test_split_list_from_string():
    assert split_list(" python, sql ,, go ") == ["python", "sql", "go"]


def test_split_list_from_list():
    assert split_list(["a", " b ", ""]) == ["a", "b"]


def test_split_list_none():
    assert split_list(None) == []
