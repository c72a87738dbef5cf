from __future__ import annotations

import streamlit as st

from cims.session import current_user, get_store

st.set_page_config(page_title="Pharma CIMS", page_icon="💊", layout="wide")

user = current_user(get_store())

if user is None:
    pages = [st.Page("login.py", title="Sign in", icon="🔐")]
else:
    pages = [
        st.Page("pages/1_📊_Dashboard.py", title="Dashboard", icon="📊", default=True),
        st.Page("pages/2_🛒_Sales.py", title="Sales", icon="🛒"),
        st.Page("pages/3_📥_Purchases.py", title="Purchases", icon="📥"),
        st.Page("pages/4_🚚_Pipeline.py", title="Pipeline", icon="🚚"),
        st.Page("pages/5_📑_Reports.py", title="Reports", icon="📑"),
    ]
    if user.is_admin:
        pages.append(st.Page("pages/6_⚙️_Setup.py", title="Setup", icon="⚙️"))

st.navigation(pages).run()
