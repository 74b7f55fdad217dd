"""
Ripe — Web Edition
===================

Streamlit application entry point.

Launch:
    cd ripe
    streamlit run WEB/app.py
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# -- Ensure project root is importable ------------------------------------
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

# -- Ensure WEB/ directory is importable ----------------------------------
_web_root = str(Path(__file__).resolve().parent)
if _web_root not in sys.path:
    sys.path.insert(0, _web_root)

import streamlit as st  # noqa: E402

import ripe  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

# ---------------------------------------------------------------------------
# Page config (must be the first Streamlit command)
# ---------------------------------------------------------------------------

st.set_page_config(
    page_title="Ripe",
    page_icon="🔐",
    layout="wide",
    initial_sidebar_state="collapsed",
)

st.markdown(
    """
    <style>
    .stButton > button[kind="primary"] {
        background-color: #e94560;
        border-color: #e94560;
    }
    .stTabs [data-baseweb="tab-panel"] {
        padding-top: 1rem;
    }
    .ripe-header {
        text-align: center;
        padding: 1rem 0 0.5rem 0;
    }
    .ripe-header p {
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
    <div class="ripe-header">
        <h1>🔐 Ripe</h1>
        <p>AES-256-CBC envelopes &amp; RSA encryption — Web Edition</p>
    </div>
    """,
    unsafe_allow_html=True,
)

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

with st.sidebar:
    st.markdown("### About")
    st.markdown(
        "**Ripe Web Edition** builds AES-256-CBC message envelopes "
        "(`length:iv:client:ciphertext`) and encrypts small payloads "
        "with RSA PKCS#1 v1.5."
    )
    st.markdown("---")
    st.markdown("#### Security Notice")
    st.markdown(
        "• Envelopes are **not** authenticated: tampering is not detected.  \n"
        "• Keys exist **only** in your browser session.  \n"
        "• Key material is zero-filled or truncated to 32 bytes."
    )
    st.markdown("---")
    st.caption(f"Ripe v{ripe.version()} — Web Edition")

# ---------------------------------------------------------------------------
# Tabs
# ---------------------------------------------------------------------------

from tabs.text_tab import render as render_text  # noqa: E402
from tabs.key_tab import render as render_keys   # noqa: E402

tab_text, tab_keys = st.tabs(["📝 Text", "🔑 Keys"])

with tab_text:
    render_text()

with tab_keys:
    render_keys()
