from __future__ import annotations

import streamlit as st

from cims.config import get_settings
from cims.constants import DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_USERNAME
from cims.services.users import authenticate
from cims.session import get_store, sign_in

st.title("💊 Pharma CIMS")
st.caption("Customer & Inventory Management System")

settings = get_settings()
store = get_store(settings)

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    st.write(f"**Storage:** `{store.backend}`")

with st.form("login"):
    username = st.text_input("Username")
    password = st.text_input("Password", type="password")
    submitted = st.form_submit_button("Sign In", type="primary")

if submitted:
    if not username or not password:
        st.error("Enter credentials")
    else:
        user = authenticate(store, username, password)
        if user is None:
            st.error("Invalid credentials")
        else:
            sign_in(user)
            st.rerun()

st.caption(f"Default: `{DEFAULT_ADMIN_USERNAME}` / `{DEFAULT_ADMIN_PASSWORD}`")
