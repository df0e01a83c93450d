from __future__ import annotations

import pytest

from fillforms.typing.enums import CanonicalKey, FieldKind, SaveState


def test_field_kind_from_str() -> None:
    assert FieldKind.from_str("checkbox") == FieldKind.CHECKBOX


def test_field_kind_from_str_raises_on_invalid_value() -> None:
    with pytest.raises(ValueError, match="Unsupported FieldKind value"):
        FieldKind.from_str("signature")


def test_canonical_keys_use_camel_case_values() -> None:
    assert CanonicalKey.from_str("passportExpiry") == CanonicalKey.PASSPORT_EXPIRY
    assert CanonicalKey.DATE_OF_BIRTH.to_str() == "dateOfBirth"


def test_save_state_values() -> None:
    assert [state.value for state in SaveState] == ["idle", "saving", "saved", "local_only", "error"]
