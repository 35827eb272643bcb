"""
HybridSeal Web — Envelope Tab
==============================

Seal plaintext (or a JSON value) into an envelope with a stored key set,
or open a pasted envelope.  Envelopes are shown in their JSON wire form.
"""

from __future__ import annotations

import json

import streamlit as st

from hybridseal import (
    CipherError,
    DecodeError,
    EncryptionEnvelope,
    HybridSealError,
    InputError,
    KeyResolutionError,
)

from key_store import get_codec, get_key_set, list_key_sets, require_key_set


# ---------------------------------------------------------------------------
# Public render function
# ---------------------------------------------------------------------------

def render() -> None:
    """Render the Envelope seal / open tab."""

    operation = st.radio(
        "Operation",
        ["Seal", "Open"],
        horizontal=True,
        key="env_operation",
    )

    key_sets = list_key_sets()
    selected_id: str | None = None
    if not key_sets:
        st.info("No key sets stored yet. Generate or import one in the **Keys** tab.")
    else:
        options = {k.key_id: f"{k.name}  ({k.source})" for k in key_sets}
        selected_id = st.selectbox(
            "Key Set",
            options.keys(),
            format_func=lambda kid: options[kid],
            key="env_key_set",
        )
        if operation == "Open":
            entry = get_key_set(selected_id) if selected_id else None
            if entry and not entry.private_material:
                st.warning("This key set has no private key — opening is not possible.")

    st.markdown("---")

    as_json = False
    if operation == "Seal":
        input_text = st.text_area(
            "Plaintext",
            height=200,
            placeholder="Enter text, or a JSON value…",
            key="env_input_seal",
        )
        as_json = st.checkbox("Parse input as JSON", key="env_as_json")
    else:
        input_text = st.text_area(
            "Envelope (JSON)",
            height=200,
            placeholder='{"encryptedDataBase64": "...", "encryptedIvBase64": "..."}',
            key="env_input_open",
        )

    if input_text:
        st.caption(f"{len(input_text):,} chars  |  {len(input_text.encode('utf-8')):,} bytes")

    btn_label = "🔒 Seal" if operation == "Seal" else "🔓 Open"
    if st.button(btn_label, type="primary", use_container_width=True, key="env_action"):
        if not input_text:
            st.error("Please enter some input first.")
            return

        try:
            if operation == "Seal":
                envelope = _do_seal(input_text, as_json, selected_id)
                wire = json.dumps(envelope.to_dict(), indent=2)
                st.success("Envelope sealed!")
                st.code(wire, language="json")
                st.download_button(
                    "📥 Download envelope.json",
                    data=wire,
                    file_name="envelope.json",
                    mime="application/json",
                    key="env_download",
                )
            else:
                value = _do_open(input_text, selected_id)
                st.success("Envelope opened!")
                if isinstance(value, str):
                    st.text_area("Plaintext", value=value, height=200, key="env_output_display")
                else:
                    st.json(value)

        except InputError as e:
            st.error(f"Missing input: {e}")
        except KeyResolutionError as e:
            st.error(f"Key could not be resolved: {e}")
        except DecodeError as e:
            st.error(f"Malformed data: {e}")
        except CipherError as e:
            st.error(f"Decryption failed: {e}")
        except HybridSealError as e:
            st.error(f"Error: {e}")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _do_seal(text: str, as_json: bool, key_id: str | None) -> EncryptionEnvelope:
    entry = require_key_set(key_id)
    if as_json:
        try:
            plaintext = json.loads(text)
        except ValueError as exc:
            raise InputError("Input is not valid JSON.") from exc
    else:
        plaintext = text
    return get_codec().seal(plaintext, entry.public_material, entry.symmetric_material)


def _do_open(wire: str, key_id: str | None):
    entry = require_key_set(key_id)
    if not entry.private_material:
        raise InputError("No private key available for opening.")
    envelope = EncryptionEnvelope.from_json(wire)
    return get_codec().open(envelope, entry.private_material, entry.symmetric_material)
