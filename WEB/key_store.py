"""
HybridSeal Web — Session-State Key Store
=========================================

Key sets (public key, private key, symmetric key) live entirely in
``st.session_state``; nothing is persisted to disk.  Material is stored
exactly as supplied, legacy obfuscated forms included, and resolved when
it is used.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import streamlit as st

from hybridseal import (
    EnvelopeCodec,
    EnvelopeSettings,
    InputError,
    KeyKind,
    KeyMaterialResolver,
    generate_demo_keys,
    load_settings,
)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass
class KeySet:
    """One sender/recipient key set stored in the session."""
    key_id: str
    name: str
    public_material: str
    private_material: str   # empty when only the public half is known
    symmetric_material: str
    source: str  # "generated" | "imported"
    created: str


# ---------------------------------------------------------------------------
# Session-state initialisation
# ---------------------------------------------------------------------------

_KEY_SETS = "hybridseal_key_sets"
_SETTINGS = "hybridseal_settings"


def _init_state() -> None:
    if _KEY_SETS not in st.session_state:
        st.session_state[_KEY_SETS] = {}
    if _SETTINGS not in st.session_state:
        st.session_state[_SETTINGS] = load_settings()


def get_settings() -> EnvelopeSettings:
    _init_state()
    return st.session_state[_SETTINGS]


def get_codec() -> EnvelopeCodec:
    """Codec configured from the environment (OAEP hash, recovery mode)."""
    return EnvelopeCodec.from_settings(get_settings())


def get_resolver() -> KeyMaterialResolver:
    return KeyMaterialResolver(get_settings().recovery_strategy())


# ---------------------------------------------------------------------------
# Key set operations
# ---------------------------------------------------------------------------

def _store(entry: KeySet) -> KeySet:
    st.session_state[_KEY_SETS][entry.key_id] = entry
    return entry


def generate_key_set(name: str, key_size: Optional[int] = None) -> KeySet:
    """Generate a fresh RSA pair and symmetric key and store them."""
    _init_state()
    keys = generate_demo_keys(key_size or get_settings().demo_rsa_key_size)
    return _store(KeySet(
        key_id=uuid.uuid4().hex[:12],
        name=name.strip() or "Untitled Key Set",
        public_material=keys.public_pem,
        private_material=keys.private_pem,
        symmetric_material=keys.symmetric_key_b64,
        source="generated",
        created=datetime.now(timezone.utc).isoformat(),
    ))


def import_key_set(
    name: str,
    public_material: str,
    symmetric_material: str,
    private_material: str = "",
) -> KeySet:
    """
    Import raw key material (PEM, bare base64 or legacy obfuscated).

    Every supplied part is resolved once up front so unusable material is
    rejected at import time.
    """
    _init_state()
    resolver = get_resolver()
    resolver.resolve(public_material, KeyKind.PUBLIC)
    resolver.resolve(symmetric_material, KeyKind.SYMMETRIC)
    if private_material.strip():
        resolver.resolve(private_material, KeyKind.PRIVATE)
    return _store(KeySet(
        key_id=uuid.uuid4().hex[:12],
        name=name.strip() or "Imported Key Set",
        public_material=public_material.strip(),
        private_material=private_material.strip(),
        symmetric_material=symmetric_material.strip(),
        source="imported",
        created=datetime.now(timezone.utc).isoformat(),
    ))


def list_key_sets() -> list[KeySet]:
    """Return all key sets in the session (newest first)."""
    _init_state()
    sets = list(st.session_state[_KEY_SETS].values())
    sets.sort(key=lambda k: k.created, reverse=True)
    return sets


def get_key_set(key_id: str) -> Optional[KeySet]:
    _init_state()
    return st.session_state[_KEY_SETS].get(key_id)


def require_key_set(key_id: Optional[str]) -> KeySet:
    entry = get_key_set(key_id) if key_id else None
    if entry is None:
        raise InputError("No key set selected.")
    return entry


def delete_key_set(key_id: str) -> bool:
    _init_state()
    return st.session_state[_KEY_SETS].pop(key_id, None) is not None


def rename_key_set(key_id: str, new_name: str) -> bool:
    _init_state()
    entry = st.session_state[_KEY_SETS].get(key_id)
    if entry is None:
        return False
    entry.name = new_name.strip() or entry.name
    return True
