"""
HybridSeal Web — Keys Tab
==========================

Manage key sets:
  • Generate a demo key set (RSA pair + symmetric key)
  • Import raw material, legacy obfuscated forms included
  • Show the canonical form the resolver produces
  • Export legacy obfuscated variants for older peers
"""

from __future__ import annotations

from datetime import datetime

import streamlit as st

from hybridseal import (
    HybridSealError,
    KeyKind,
    dearmor,
    obfuscate_key,
)

from key_store import (
    delete_key_set,
    generate_key_set,
    get_resolver,
    get_settings,
    import_key_set,
    list_key_sets,
    rename_key_set,
)


# ---------------------------------------------------------------------------
# Public render function
# ---------------------------------------------------------------------------

def render() -> None:
    """Render the Keys management tab."""

    gen_col, imp_col = st.columns(2)

    with gen_col:
        st.subheader("🔑 Generate Key Set")
        gen_name = st.text_input("Key Set Name", placeholder="e.g. Demo Peer", key="ks_gen_name")
        sizes = [2048, 3072, 4096]
        default_size = get_settings().demo_rsa_key_size
        gen_size = st.selectbox(
            "RSA Key Size",
            sizes,
            index=sizes.index(default_size) if default_size in sizes else 0,
            key="ks_gen_size",
        )
        if st.button("Generate", key="ks_gen_btn", use_container_width=True):
            if not gen_name.strip():
                st.error("Please enter a name for the key set.")
            else:
                with st.spinner(f"Generating {gen_size}-bit RSA keypair…"):
                    entry = generate_key_set(gen_name, key_size=gen_size)
                st.success(f"Key set **{entry.name}** generated!")
                st.rerun()

    with imp_col:
        st.subheader("📥 Import Key Set")
        imp_name = st.text_input("Key Set Name", placeholder="e.g. Partner", key="ks_imp_name")
        pub_text = st.text_area(
            "Public Key",
            height=110,
            placeholder="PEM, bare base64 DER or legacy obfuscated form",
            key="ks_imp_pub",
        )
        priv_text = st.text_area(
            "Private Key (optional)",
            height=110,
            placeholder="PEM, bare base64 DER or legacy obfuscated form",
            key="ks_imp_priv",
        )
        sym_text = st.text_input("Symmetric Key", placeholder="Base64 or legacy form", key="ks_imp_sym")
        if st.button("Import", key="ks_imp_btn", use_container_width=True):
            if not pub_text.strip() or not sym_text.strip():
                st.error("A public key and a symmetric key are required.")
            else:
                try:
                    entry = import_key_set(imp_name, pub_text, sym_text, priv_text)
                    st.success(f"Key set **{entry.name}** imported!")
                    st.rerun()
                except HybridSealError as e:
                    st.error(f"Import failed: {e}")

    st.markdown("---")
    key_sets = list_key_sets()
    if not key_sets:
        st.info("No key sets yet. Generate or import one above.")
    else:
        st.caption(f"{len(key_sets)} key set(s) stored in this session")
        for entry in key_sets:
            _render_key_set_card(entry)


# ---------------------------------------------------------------------------
# Card renderer
# ---------------------------------------------------------------------------

def _render_key_set_card(entry) -> None:
    """Render a single key set card with actions."""
    with st.container(border=True):
        st.markdown(f"**{entry.name}**")
        halves = "Public + Private" if entry.private_material else "Public Only"
        st.caption(f"{entry.source}  •  {halves}  •  {_format_time(entry.created)}")

        with st.expander("Canonical form", expanded=False):
            try:
                resolver = get_resolver()
                st.code(resolver.resolve(entry.public_material, KeyKind.PUBLIC), language=None)
                if entry.private_material:
                    st.code(resolver.resolve(entry.private_material, KeyKind.PRIVATE), language=None)
                key = resolver.resolve(entry.symmetric_material, KeyKind.SYMMETRIC)
                st.code(key.hex(), language=None)
            except HybridSealError as e:
                st.error(f"Resolution failed: {e}")

        with st.expander("Export legacy obfuscated form", expanded=False):
            settings = get_settings()
            shift = st.slider(
                "Shift",
                min_value=settings.min_shift,
                max_value=settings.max_shift,
                value=settings.min_shift,
                key=f"ks_shift_{entry.key_id}",
            )
            byte_level = st.checkbox("Shift bytes instead of text", key=f"ks_bytes_{entry.key_id}")
            try:
                st.code(_obfuscated(entry.public_material, KeyKind.PUBLIC, shift, byte_level), language=None)
                if entry.private_material:
                    st.code(
                        _obfuscated(entry.private_material, KeyKind.PRIVATE, shift, byte_level),
                        language=None,
                    )
                legacy_sym = get_resolver().legacy_symmetric_form(entry.symmetric_material)
                if legacy_sym is None:
                    st.caption("The symmetric key has no legacy form that resolves to the same key; share it unchanged.")
                else:
                    st.code(legacy_sym, language=None)
            except HybridSealError as e:
                st.error(f"Export failed: {e}")

        action_cols = st.columns([3, 1])
        with action_cols[0]:
            new_name = st.text_input(
                "Rename",
                value=entry.name,
                key=f"ks_rename_input_{entry.key_id}",
                label_visibility="collapsed",
            )
            if new_name != entry.name:
                rename_key_set(entry.key_id, new_name)
                st.rerun()
        with action_cols[1]:
            if st.button("🗑️ Delete", key=f"ks_del_{entry.key_id}", use_container_width=True):
                delete_key_set(entry.key_id)
                st.rerun()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _obfuscated(material: str, kind: KeyKind, shift: int, byte_level: bool) -> str:
    pem = get_resolver().resolve(material, kind)
    der = dearmor(pem, kind.pem_label)
    return obfuscate_key(der, kind, shift, byte_level=byte_level)


def _format_time(iso_str: str) -> str:
    """Format an ISO timestamp for display."""
    try:
        dt = datetime.fromisoformat(iso_str)
        return dt.strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return iso_str
