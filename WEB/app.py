"""
HybridSeal — Web Edition
=========================

Streamlit application entry point.

Launch:
    pip install -e .[web]
    streamlit run WEB/app.py
"""

from __future__ import annotations

import sys
from pathlib import Path

# -- Ensure WEB/ directory is importable ----------------------------------
_web_root = str(Path(__file__).resolve().parent)
if _web_root not in sys.path:
    sys.path.insert(0, _web_root)

import streamlit as st  # noqa: E402

from hybridseal import __version__, configure_logging  # noqa: E402
from key_store import get_settings  # noqa: E402

# ---------------------------------------------------------------------------
# Page config (first Streamlit call)
# ---------------------------------------------------------------------------

st.set_page_config(
    page_title="HybridSeal",
    page_icon="🔐",
    layout="wide",
    initial_sidebar_state="collapsed",
)

configure_logging(get_settings().log_level)

st.markdown(
    """
    <style>
    .stTabs [data-baseweb="tab-panel"] {
        padding-top: 1rem;
    }
    .hybridseal-header {
        text-align: center;
        padding: 1rem 0 0.5rem 0;
    }
    .hybridseal-header p {
        color: #a0a0b8;
        font-size: 0.95rem;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------

st.markdown(
    """
    <div class="hybridseal-header">
        <h1>🔐 HybridSeal</h1>
        <p>AES-256-CBC payloads with RSA-OAEP wrapped IVs</p>
    </div>
    """,
    unsafe_allow_html=True,
)

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

with st.sidebar:
    settings = get_settings()
    st.markdown("### Settings")
    st.markdown(
        f"• OAEP hash: **{settings.oaep_hash.value}**  \n"
        f"• Legacy key recovery: **{'on' if settings.legacy_recovery else 'off'}**  \n"
        f"• Shift range: **{settings.min_shift}–{settings.max_shift}**"
    )
    st.caption("Configure with HYBRIDSEAL_* environment variables or a .env file.")
    st.markdown("---")
    st.markdown("#### Security Notice")
    st.markdown(
        "• Keys exist **only** in your browser session.  \n"
        "• Legacy obfuscated keys are **not** protected by their obfuscation.  \n"
        "• Envelopes carry no authentication tag; share them over a trusted channel."
    )
    st.markdown("---")
    st.caption(f"HybridSeal v{__version__} — Web Edition")

# ---------------------------------------------------------------------------
# Tabs
# ---------------------------------------------------------------------------

from tabs.envelope_tab import render as render_envelope  # noqa: E402
from tabs.key_tab import render as render_keys  # noqa: E402

tab_envelope, tab_keys = st.tabs(["✉️ Envelope", "🔑 Keys"])

with tab_envelope:
    render_envelope()

with tab_keys:
    render_keys()
