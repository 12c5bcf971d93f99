import json

from models.session import SessionState
from utils.credentials import CredentialStore, bind_credential, resolve_api_key


def test_round_trip_and_last_write_wins(tmp_path) -> None:
    store = CredentialStore(str(tmp_path / "nested" / "store.json"))
    assert store.get("prostock_api_key") is None

    store.set("prostock_api_key", "sk-one")
    store.set("prostock_api_key", "sk-two")
    assert CredentialStore(store.path).get("prostock_api_key") == "sk-two"


def test_corrupt_store_reads_as_empty(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")
    store = CredentialStore(str(path))

    assert store.get("prostock_api_key") is None
    store.set("prostock_api_key", "sk-new")
    assert json.loads(path.read_text(encoding="utf-8")) == {"prostock_api_key": "sk-new"}


def test_resolve_api_key_precedence() -> None:
    assert resolve_api_key("  sk-user ", "sk-env") == "sk-user"
    assert resolve_api_key("", "sk-env") == "sk-env"
    assert resolve_api_key("   ", None) == ""


def test_bind_credential_loads_and_persists(tmp_path) -> None:
    store = CredentialStore(str(tmp_path / "store.json"))
    store.set("prostock_api_key", "sk-saved")

    state = SessionState()
    unsubscribe = bind_credential(state, store)
    assert state.api_key == "sk-saved"

    state.set_credential("sk-edited")
    assert store.get("prostock_api_key") == "sk-edited"

    unsubscribe()
    state.set_credential("sk-ignored")
    assert store.get("prostock_api_key") == "sk-edited"
