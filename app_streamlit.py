import html
import streamlit as st
import requests
import json
from typing import List, Optional, Tuple

import os
API_BASE = os.getenv("API_BASE", "http://127.0.0.1:10000")

# --- PAGE CONFIG ---
st.set_page_config(
    page_title="SafeStore",
    layout="wide",
    initial_sidebar_state="expanded",
)

# --- GLOBAL STYLE OVERRIDES ---
st.markdown(
    """
    <style>
    .stApp {
        background-color: #f7f9fc;
        font-family: -apple-system, BlinkMacSystemFont, 'Inter', 'Segoe UI', Roboto, sans-serif;
    }
    h1, h2, h3, h4, h5, h6 {
        color: #1f2937;
        font-weight: 600;
        letter-spacing: -0.03em;
    }
    .stButton>button {
        border-radius: 8px;
        background-color: #2563eb;
        color: #fff;
        border: 0;
        padding: 0.6em 0.9em;
        font-weight: 600;
    }
    .file-card {
        background-color: #ffffff;
        border: 1px solid rgba(0,0,0,0.08);
        border-radius: 0.75rem;
        padding: 0.8rem 1rem;
        margin-bottom: 0.5rem;
    }
    .file-name {
        font-family: ui-monospace, SFMono-Regular, Menlo, monospace;
        font-size: 0.9rem;
        color: #111827;
        word-break: break-all;
    }
    .file-meta {
        font-size: 0.75rem;
        color: #6b7280;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

# --- SESSION STATE ---
def init_session():
    if "files" not in st.session_state:
        st.session_state.files = []
    if "health" not in st.session_state:
        st.session_state.health = None
    if "last_uploaded" not in st.session_state:
        st.session_state.last_uploaded = None

def _error_detail(resp: requests.Response) -> str:
    try:
        return resp.json().get("error", resp.text)
    except Exception:
        return resp.text

def fetch_files() -> List[dict]:
    try:
        resp = requests.get(f"{API_BASE}/files", timeout=30)
    except Exception as e:
        st.error(f"Could not load files: {e}")
        return []

    if resp.status_code == 200:
        return resp.json()

    st.error(f"Could not load files ({resp.status_code}): {_error_detail(resp)}")
    return []

def fetch_health() -> dict:
    try:
        resp = requests.get(f"{API_BASE}/health", timeout=10)
        if resp.status_code == 200:
            return resp.json()
        else:
            return {"error": f"{resp.status_code} {resp.text}"}
    except Exception as e:
        return {"error": str(e)}

def upload_file(uploaded_file) -> Tuple[bool, str]:
    files = {
        "uploadFile": (
            uploaded_file.name,
            uploaded_file.getvalue(),
            uploaded_file.type or "application/octet-stream",
        )
    }

    try:
        resp = requests.post(f"{API_BASE}/upload", files=files, timeout=300)
    except Exception as e:
        return False, f"Upload error: {e}"

    if resp.status_code == 200:
        try:
            data = resp.json()
        except json.JSONDecodeError:
            return False, f"Upload succeeded but response not JSON: {resp.text}"
        st.session_state.last_uploaded = data.get("filename")
        return True, f"Stored as {data.get('filename')} ({data.get('size')} bytes encrypted)"

    return False, f"Upload failed ({resp.status_code}): {_error_detail(resp)}"

def download_file(name: str, decrypt: bool) -> Optional[bytes]:
    try:
        resp = requests.get(
            f"{API_BASE}/download/{name}",
            params={"decrypt": "true" if decrypt else "false"},
            timeout=300,
        )
    except Exception as e:
        st.error(f"Download error: {e}")
        return None

    if resp.status_code == 200:
        return resp.content

    st.error(f"Download failed ({resp.status_code}): {_error_detail(resp)}")
    return None

def delete_file(name: str) -> bool:
    try:
        resp = requests.delete(f"{API_BASE}/delete/{name}", timeout=30)
    except Exception as e:
        st.error(f"Delete error: {e}")
        return False

    if resp.status_code == 200:
        return True

    st.error(f"Delete failed ({resp.status_code}): {_error_detail(resp)}")
    return False

def render_file_card(f: dict):
    name = f.get("name", "?")
    safe_name = html.escape(name)
    st.markdown(
        f"""
        <div class="file-card">
            <div class="file-name">{safe_name}</div>
            <div class="file-meta">{int(f.get("size", 0))} bytes &middot; uploaded {html.escape(str(f.get("uploadDate", "?")))}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )
    col_raw, col_plain, col_del = st.columns(3)
    with col_raw:
        if st.button("Fetch encrypted", key=f"raw_{name}"):
            data = download_file(name, decrypt=False)
            if data is not None:
                st.download_button("Save encrypted blob", data, file_name=name, key=f"save_raw_{name}")
    with col_plain:
        if st.button("Fetch decrypted", key=f"plain_{name}"):
            data = download_file(name, decrypt=True)
            if data is not None:
                st.download_button("Save file", data, file_name=name, key=f"save_plain_{name}")
    with col_del:
        if st.button("Delete", key=f"del_{name}"):
            if delete_file(name):
                st.success(f"Deleted {name}")
                st.session_state.files = fetch_files()
                st.rerun()


# -------------------- APP BODY --------------------
init_session()

# SIDEBAR
with st.sidebar:
    st.markdown("## SafeStore")
    st.caption(f"Backend: {API_BASE}")
    if st.button("Check health"):
        st.session_state.health = fetch_health()
    if st.session_state.health:
        st.json(st.session_state.health, expanded=False)
    st.markdown("---")
    st.caption(
        "Files are encrypted before they touch disk and stored under a random name. "
        "Note the stored name after uploading: the original name is not kept."
    )

st.title("SafeStore")

tab_upload, tab_files = st.tabs(["Upload", "Stored files"])

# --- TAB: UPLOAD ---
with tab_upload:
    uploaded_file = st.file_uploader("Choose a file to upload (max 100MB)")

    if st.button("Upload file"):
        if uploaded_file is None:
            st.warning("Please choose a file first.")
        else:
            with st.spinner("Encrypting & uploading..."):
                ok, msg = upload_file(uploaded_file)
            if ok:
                st.success(msg)
                st.session_state.files = fetch_files()
            else:
                st.error(msg)

    if st.session_state.last_uploaded:
        st.info(f"Last stored name: {st.session_state.last_uploaded}")

# --- TAB: FILES ---
with tab_files:
    if st.button("Refresh"):
        st.session_state.files = fetch_files()

    files = st.session_state.files
    if not files:
        st.info("No files stored yet.")
    else:
        for f in sorted(files, key=lambda x: x.get("uploadDate", ""), reverse=True):
            render_file_card(f)
