#!/usr/bin/env python
"""
Streamlit Web UI for SnapScript.

Run with:
    streamlit run src/snapscript/app.py

Features:
- Upload several page images at once
- Reorder or remove pages before processing
- Sequential transcription with per-file status
- Download everything as a single Word document
"""

import sys
from pathlib import Path

# Make the package importable when run as a script by streamlit
_src_dir = Path(__file__).parent.parent
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

import logging

import streamlit as st

from snapscript.config import get_config, setup_logging
from snapscript.utils.annotator import get_annotator
from snapscript.utils.assembler import LayoutAssembler, NoContentError
from snapscript.utils.export import DocxExporter, DOCX_MIME_TYPE
from snapscript.utils.images import DecodeError, SourceImage
from snapscript.utils.session import FileQueue, ProcessingStatus

setup_logging()
logger = logging.getLogger("snapscript.app")

# Page config must be first Streamlit command
st.set_page_config(
    page_title="SnapScript OCR",
    page_icon="📝",
    layout="centered"
)

STATUS_BADGES = {
    ProcessingStatus.IDLE: "⚪ Waiting",
    ProcessingStatus.PROCESSING: "🔄 Processing",
    ProcessingStatus.COMPLETED: "✅ Ready",
    ProcessingStatus.ERROR: "❌ Error",
}


def init_session_state():
    """Initialize session state variables."""
    if "queue" not in st.session_state:
        st.session_state.queue = FileQueue()
    if "seen_uploads" not in st.session_state:
        st.session_state.seen_uploads = set()
    if "uploader_key" not in st.session_state:
        st.session_state.uploader_key = 0
    if "docx_bytes" not in st.session_state:
        st.session_state.docx_bytes = None


def render_sidebar() -> dict:
    """Render the settings sidebar and return the configuration."""
    config = get_config()

    st.sidebar.header("⚙️ Settings")
    config.annotator.engine = st.sidebar.selectbox(
        "Annotator",
        ["gemini", "sidecar"],
        index=0 if config.annotator.engine == "gemini" else 1
    )

    if config.annotator.engine == "gemini":
        config.annotator.model = st.sidebar.text_input("Model", value=config.annotator.model)
        api_key = st.sidebar.text_input(
            "Gemini API key",
            value="",
            type="password",
            help="Leave empty to use GEMINI_API_KEY"
        )
        if api_key:
            config.annotator.api_key = api_key
    else:
        config.annotator.annotations_dir = st.sidebar.text_input(
            "Annotations folder",
            value=config.annotator.annotations_dir or "",
            help="Folder with one <image name>.txt per uploaded image"
        )

    return config


def add_uploads(uploaded_files):
    """Add newly uploaded files to the queue."""
    queue: FileQueue = st.session_state.queue
    for uploaded_file in uploaded_files:
        key = (uploaded_file.name, uploaded_file.size)
        if key in st.session_state.seen_uploads:
            continue
        st.session_state.seen_uploads.add(key)
        try:
            image = SourceImage.from_bytes(
                uploaded_file.getvalue(),
                name=uploaded_file.name,
                mime_type=uploaded_file.type or None
            )
        except DecodeError as e:
            st.warning(f"Skipped {uploaded_file.name}: {e}")
            continue
        queue.add(image)
        st.session_state.docx_bytes = None


def clear_all():
    st.session_state.queue.clear()
    st.session_state.seen_uploads = set()
    st.session_state.uploader_key += 1
    st.session_state.docx_bytes = None


def render_file_list():
    """Render the ordered list of uploaded files."""
    queue: FileQueue = st.session_state.queue

    for index, uploaded in enumerate(list(queue)):
        with st.container(border=True):
            cols = st.columns([1, 3, 1])

            with cols[0]:
                st.image(uploaded.image.data, use_container_width=True)

            with cols[1]:
                st.markdown(f"**{index + 1}. {uploaded.name}**")
                st.caption(STATUS_BADGES[uploaded.status])
                if uploaded.status == ProcessingStatus.ERROR:
                    st.error(uploaded.error_message or "Unknown error")
                elif uploaded.extracted_text:
                    with st.expander("Extracted text"):
                        st.text(uploaded.extracted_text)

            with cols[2]:
                if st.button("⬆️", key=f"up_{uploaded.file_id}", disabled=index == 0):
                    queue.move(index, "up")
                    st.session_state.docx_bytes = None
                    st.rerun()
                if st.button("⬇️", key=f"down_{uploaded.file_id}", disabled=index == len(queue) - 1):
                    queue.move(index, "down")
                    st.session_state.docx_bytes = None
                    st.rerun()
                if st.button("🗑️", key=f"remove_{uploaded.file_id}"):
                    queue.remove(uploaded.file_id)
                    st.session_state.docx_bytes = None
                    st.rerun()


def process_all(config):
    """Transcribe pending files one at a time with a progress bar."""
    queue: FileQueue = st.session_state.queue

    try:
        annotator = get_annotator(config.annotator)
    except ValueError as e:
        st.error(str(e))
        return

    pending = [f for f in queue if f.status != ProcessingStatus.COMPLETED]
    if not pending:
        st.info("All files are already processed.")
        return

    progress_bar = st.progress(0, text="Starting...")
    done = {"count": 0}

    def on_update(uploaded):
        if uploaded.status == ProcessingStatus.PROCESSING:
            progress_bar.progress(
                done["count"] / len(pending),
                text=f"Processing {uploaded.name} ({done['count'] + 1}/{len(pending)})..."
            )
        else:
            done["count"] += 1
            progress_bar.progress(done["count"] / len(pending), text=f"{uploaded.name}: {uploaded.status.value}")

    queue.process_pending(annotator, on_update=on_update)
    progress_bar.empty()
    st.session_state.docx_bytes = None


def build_docx(config) -> bytes:
    """Assemble the eligible files and encode them as DOCX."""
    queue: FileQueue = st.session_state.queue
    document = LayoutAssembler(config.layout).assemble(queue.eligible_files())
    return DocxExporter(template_path=config.export.docx_template).encode(document)


def main():
    """Main application."""
    init_session_state()
    config = render_sidebar()
    queue: FileQueue = st.session_state.queue

    st.title("📝 SnapScript OCR")
    st.caption(
        "Upload images containing text or chemical formulas. They are transcribed "
        "and compiled into a single Word document."
    )

    uploaded_files = st.file_uploader(
        "Upload images",
        type=["png", "jpg", "jpeg", "webp", "gif", "bmp"],
        accept_multiple_files=True,
        key=f"uploader_{st.session_state.uploader_key}"
    )
    if uploaded_files:
        add_uploads(uploaded_files)

    if len(queue) == 0:
        st.info("No images uploaded yet.")
        return

    cols = st.columns(4)
    with cols[0]:
        st.metric("Ready", f"{queue.completed_count} / {len(queue)}")
    with cols[1]:
        if st.button("🔄 Process All", use_container_width=True):
            process_all(config)
            st.rerun()
    with cols[2]:
        if st.button("📄 Build Word", use_container_width=True, disabled=queue.completed_count == 0):
            try:
                st.session_state.docx_bytes = build_docx(config)
            except NoContentError as e:
                st.error(f"Error generating document: {e}")
    with cols[3]:
        if st.button("🗑️ Clear all", use_container_width=True):
            clear_all()
            st.rerun()

    if st.session_state.docx_bytes:
        st.download_button(
            "⬇️ Download Word",
            st.session_state.docx_bytes,
            file_name=config.export.output_name,
            mime=DOCX_MIME_TYPE,
            use_container_width=True,
            type="primary"
        )

    st.markdown("---")
    render_file_list()


if __name__ == "__main__":
    main()
