import datetime
import json
import os
import sys

import pandas as pd
import streamlit as st

# Ensure project root is in path
current_dir = os.path.dirname(os.path.abspath(__file__))
parent_dir = os.path.dirname(current_dir)
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

from cuemerge.errors import CuemergeError
from cuemerge.fetcher import FetchSettings, PartFetcher
from cuemerge.metadata import loan_expiry, parse_book_meta, pick_cover_href
from cuemerge.processor import load_spine, mp3_parts, mp3_with_cue
from cuemerge.utils import setup_logging

setup_logging()

# Page Config
st.set_page_config(
    page_title="Audiobook Part Merger",
    page_icon="🎧",
    layout="wide"
)

# Initialize Session State
if 'spine' not in st.session_state:
    st.session_state.spine = None
if 'openbook' not in st.session_state:
    st.session_state.openbook = None
if 'archive' not in st.session_state:
    st.session_state.archive = None

# Sidebar
st.sidebar.title("Configuration")
merge = st.sidebar.checkbox("Merge into a single MP3 with chapters", value=True)
decode = st.sidebar.checkbox("Decode audio for exact durations (ffprobe)", value=False)
timeout = st.sidebar.slider("Request timeout (s)", 5, 120, 30)
expires = st.sidebar.date_input("Loan expires", value=None)
cover_url = st.sidebar.text_input("Cover image URL")

st.title("Audiobook Part Merger 🎧")
st.markdown("Rebuild a multi-part audiobook into numbered parts or one chaptered MP3 with a CUE sheet.")

# --- Step 1: Load ---
st.header("1. Load Openbook")
openbook_file = st.file_uploader("Upload openbook JSON", type=["json"])
base_url = st.text_input("Openbook URL (parts are resolved against its host)")

with st.expander("Loan details (optional)"):
    media_file = st.file_uploader("Title media JSON (finds the cover)", type=["json"])
    sync_file = st.file_uploader("Library sync JSON (finds the loan expiry)", type=["json"])
    title_id = st.text_input("Title id (defaults to the media id)")

if openbook_file and base_url:
    if st.button("Parse Table of Contents"):
        try:
            openbook = json.load(openbook_file)
            st.session_state.spine = load_spine(openbook, base_url)
            st.session_state.openbook = openbook
            st.session_state.archive = None
            st.success(f"Found {len(st.session_state.spine.index)} chapters.")
        except (CuemergeError, ValueError) as e:
            st.error(f"Could not parse table of contents: {e}")

# --- Step 2: Review ---
if st.session_state.spine:
    st.header("2. Review Chapters")
    spine = st.session_state.spine

    data = []
    for bounds in spine.index:
        data.append({
            "Title": bounds.title,
            "Start Part": bounds.start.part,
            "Start Offset (s)": bounds.start.offset,
            "End Part": bounds.end.part,
            "End Offset (s)": "end" if bounds.end.is_end_of_stream else bounds.end.offset,
        })
    st.dataframe(pd.DataFrame(data), hide_index=True, width='stretch')
    st.info(f"{len(spine.part_files)} parts will be downloaded.")

    # --- Step 3: Build ---
    st.header("3. Build")
    if st.button("Start"):
        fetcher = PartFetcher(FetchSettings(timeout=timeout))
        with st.spinner("Downloading parts..."):
            try:
                media = json.load(media_file) if media_file else {}
                book_cover = cover_url or (pick_cover_href(media) if media else None)
                book_expires = expires if isinstance(expires, datetime.date) else None
                if book_expires is None and sync_file and (title_id or media.get("id")):
                    book_expires = loan_expiry(json.load(sync_file), title_id or media["id"])

                cover, cover_mime = None, "image/jpeg"
                if book_cover:
                    cover, cover_mime = fetcher.fetch_cover(book_cover)
                meta = parse_book_meta(
                    st.session_state.openbook,
                    expires=book_expires,
                    cover=cover,
                    cover_mime=cover_mime,
                )
                if merge:
                    st.session_state.archive = mp3_with_cue(spine, meta, fetcher, decode=decode)
                else:
                    st.session_state.archive = mp3_parts(spine, meta, fetcher)
                st.success("Processing Complete!")
            except (CuemergeError, ValueError) as e:
                st.session_state.archive = None
                st.error(f"Failed: {e}")

# --- Step 4: Download ---
if st.session_state.archive:
    st.header("4. Download")
    archive = st.session_state.archive
    st.download_button(
        label=f"Download {archive.name}",
        data=archive.data,
        file_name=archive.name,
        mime="application/zip"
    )
