"""Streamlit Web UI for curating ground-truth datasets."""

from datetime import datetime
from typing import Any

import pandas as pd
import streamlit as st

from ground_truth_curator import __version__, codec
from ground_truth_curator.auth.gate import verify_access
from ground_truth_curator.config import settings
from ground_truth_curator.datasets.collection import ApprovalFilter, InsertPosition, SortDirection
from ground_truth_curator.datasets.session import ReviewSession, open_session
from ground_truth_curator.exceptions import CuratorError
from ground_truth_curator.records.models import Record, RecordKind

PAGES = {
    "Ground Truth Entries": RecordKind.ENTRY,
    "Legal Documents": RecordKind.DOCUMENT,
}


def check_access(password: str) -> bool:
    """Verify the document workspace password."""
    return verify_access(password, settings.DOCUMENT_ACCESS_PASSWORD)


def format_timestamp(value: str | None) -> str:
    """Render an ISO timestamp for display."""
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return value


def split_lines(text: str) -> list[str]:
    """One list item per non-blank line."""
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def truncate(text: str, length: int = 80) -> str:
    return text if len(text) <= length else text[: length - 3] + "..."


def records_dataframe(records: list[Record], kind: RecordKind) -> pd.DataFrame:
    """Tabular view of records for ``st.dataframe``."""
    if kind == RecordKind.ENTRY:
        rows = [
            {
                "Chunk ID": r.ground_truth_chunk_id,
                "Question": truncate(r.question),
                "Ground Truth": truncate(r.ground_truth_text),
                "Approved": "Yes" if r.approved else "Pending",
                "Approved By": r.approved_by or "",
                "Date Approved": format_timestamp(r.date_approved),
            }
            for r in records
        ]
        columns = ["Chunk ID", "Question", "Ground Truth", "Approved", "Approved By", "Date Approved"]
    else:
        rows = [
            {
                "ID": r.id,
                "Page": r.page_num,
                "Chapter": (r.metadata.chapter if r.metadata else None) or "",
                "Part": (r.metadata.part if r.metadata else None) or "",
                "Text": truncate(r.text),
                "Approved": "Yes" if r.approved else "Pending",
                "Approved By": r.approved_by or "",
            }
            for r in records
        ]
        columns = ["ID", "Page", "Chapter", "Part", "Text", "Approved", "Approved By"]
    return pd.DataFrame(rows, columns=columns)


def record_label(record: Record) -> str:
    """Short label for record pickers."""
    if record.KIND == RecordKind.ENTRY:
        return f"{record.ground_truth_chunk_id} - {truncate(record.question, 60)}"
    return f"{record.id} (page {record.page_num})"


def document_form_data(
    doc_id: str,
    text: str,
    page_num: int | None,
    chapter: str,
    part: str,
    schedule: str,
    schedule_title: str,
    doc_type: str,
    side_notes: str,
    references: str,
    base: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build document fields from the edit form.

    Extra fields of ``base`` (an existing document) are kept.
    """
    data = dict(base or {})
    metadata = dict(data.get("metadata") or {})
    metadata.update(
        chapter=chapter or None,
        part=part or None,
        schedule=schedule or None,
        schedule_title=schedule_title or None,
        type=doc_type or None,
        side_notes=split_lines(side_notes),
        references=split_lines(references),
    )
    data.update(id=doc_id, text=text, page_num=page_num, metadata=metadata)
    return data


def get_review_session(kind: RecordKind) -> ReviewSession:
    """Session for ``kind``, kept across reruns in ``st.session_state``."""
    key = f"review_session_{kind.value}"
    if key not in st.session_state:
        # Named stores ask before resuming; single-slot stores resume directly
        session = open_session(kind, resume=False)
        if session.named_store is None:
            session.load()
            st.session_state[f"resume_checked_{kind.value}"] = True
        st.session_state[key] = session
    return st.session_state[key]


def run_action(action, success: str | None = None) -> bool:
    """Run a session action, reporting curation errors in the page."""
    try:
        action()
    except (CuratorError, ValueError) as e:
        st.error(str(e))
        return False
    if success:
        st.success(success)
    return True


# =============================================================================
# Page sections
# =============================================================================


def render_access_gate() -> bool:
    """Password gate for the document workspace. Returns True once unlocked."""
    if st.session_state.get("document_access"):
        if st.sidebar.button("Lock documents"):
            st.session_state.document_access = False
            st.rerun()
        return True

    st.warning("The document workspace is password protected.")
    with st.form("document_access_form"):
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Unlock")
        if submitted:
            if check_access(password):
                st.session_state.document_access = True
                st.rerun()
            else:
                st.error("Invalid password")
    return False


def render_username(session: ReviewSession) -> bool:
    """Ask for the curator name. Returns True once it is set."""
    if session.username:
        st.sidebar.caption(f":bust_in_silhouette: Curating as **{session.username}**")
        return True

    st.info("Enter your name. It is recorded on every approval.")
    with st.form(f"username_form_{session.kind.value}"):
        username = st.text_input("Your name")
        if st.form_submit_button("Continue"):
            if run_action(lambda: session.set_username(username)):
                st.rerun()
    return False


def render_resume_prompt(session: ReviewSession) -> None:
    """Offer to resume the last active named dataset."""
    flag = f"resume_checked_{session.kind.value}"
    if st.session_state.get(flag):
        return
    if not session.has_unsaved_work():
        st.session_state[flag] = True
        return

    st.info("You have unsaved work from a previous session. Continue where you left off?")
    col1, col2 = st.columns(2)
    if col1.button("Load Previous Work", type="primary"):
        session.load()
        st.session_state[flag] = True
        st.rerun()
    if col2.button("Start Fresh"):
        session.start_fresh()
        st.session_state[flag] = True
        st.rerun()


def render_dataset_management(session: ReviewSession) -> None:
    """Save, rename, switch and start fresh on the local named store."""
    store = session.named_store
    with st.expander(f":floppy_disk: Dataset: {session.dataset_name or 'Untitled'}", expanded=False):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Dataset name", value=session.dataset_name or "")
            if st.button("Save Dataset", type="primary"):
                run_action(lambda: session.save(name), f"Dataset \"{name.strip()}\" saved successfully!")
        with col2:
            new_name = st.text_input("Rename to")
            if st.button("Rename"):
                run_action(lambda: session.rename(new_name), f"Dataset renamed to \"{new_name.strip()}\"")

        datasets = store.list_datasets()
        if datasets:
            options = {f"{d.name} ({d.record_count} records)": d.name for d in datasets}
            choice = st.selectbox("Switch dataset", list(options))
            col1, col2 = st.columns(2)
            if col1.button("Open"):
                session.start_fresh()
                session.load(options[choice])
                st.rerun()
            if col2.button("Start Fresh", key="start_fresh_manage"):
                session.start_fresh()
                st.rerun()


def render_import(session: ReviewSession) -> None:
    formats = [fmt.value for fmt in codec.supported_formats(session.kind)]
    uploaded = st.file_uploader("Import dataset", type=formats)
    if uploaded is None:
        return

    if len(session):
        st.error(
            f"Import Blocked: You have {len(session)} entries loaded. "
            "Export or clear the current dataset before importing new data."
        )
        return

    if st.button("Import", type="primary"):
        fmt = codec.format_from_filename(uploaded.name)
        text = uploaded.getvalue().decode("utf-8")
        if run_action(lambda: session.import_text(text, fmt)):
            st.success(f"Imported {len(session)} records")
            st.rerun()


def render_stats(session: ReviewSession) -> None:
    stats = session.stats()
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total", stats.total)
    col2.metric("Approved", stats.approved)
    col3.metric("Pending", stats.pending)
    col4.metric("Approval Rate", f"{stats.approval_rate}%")


def render_table(session: ReviewSession) -> list[Record]:
    """Search, filter and sort controls plus the table. Returns the view."""
    sort_key = f"sort_{session.kind.value}"
    if sort_key not in st.session_state:
        st.session_state[sort_key] = SortDirection.NONE

    col1, col2, col3 = st.columns([4, 2, 1])
    with col1:
        term = st.text_input("Search", placeholder="Search...", label_visibility="collapsed")
    with col2:
        approval = st.selectbox(
            "Status",
            [f.value for f in ApprovalFilter],
            format_func=str.title,
            label_visibility="collapsed",
        )
    with col3:
        direction = st.session_state[sort_key]
        arrows = {SortDirection.NONE: "", SortDirection.ASC: "(asc)", SortDirection.DESC: "(desc)"}
        if st.button(f"Sort ID {arrows[direction]}", use_container_width=True):
            st.session_state[sort_key] = direction.next()
            st.rerun()

    view = session.view(term, approval, st.session_state[sort_key])
    st.caption(f"Showing {len(view)} of {len(session)} records")
    st.dataframe(records_dataframe(view, session.kind), use_container_width=True, hide_index=True)
    return view


def render_entry_form(session: ReviewSession, record: Record | None) -> dict[str, Any] | None:
    """Entry fields; returns the submitted data or None."""
    key = record.identity if record else "new"
    with st.form(f"entry_form_{key}"):
        question = st.text_area("Question*", value=record.question if record else "")
        chunk_id = st.text_input(
            "Ground Truth Chunk ID*", value=record.ground_truth_chunk_id if record else ""
        )
        text = st.text_area(
            "Ground Truth Text*", value=record.ground_truth_text if record else "", height=200
        )
        if st.form_submit_button("Save" if record else "Add Entry", type="primary"):
            return {
                "question": question,
                "ground_truth_chunk_id": chunk_id,
                "ground_truth_text": text,
            }
    return None


def render_document_form(session: ReviewSession, record: Record | None) -> dict[str, Any] | None:
    """Document fields; returns the submitted data or None."""
    key = record.identity if record else "new"
    meta = record.metadata if record and record.metadata else None
    with st.form(f"document_form_{key}"):
        col1, col2 = st.columns(2)
        doc_id = col1.text_input("Document ID*", value=record.id if record else "")
        page_num = col2.number_input(
            "Page Number*", min_value=0, step=1, value=(record.page_num or 0) if record else 0
        )
        text = st.text_area("Text*", value=record.text if record else "", height=250)
        col1, col2, col3 = st.columns(3)
        chapter = col1.text_input("Chapter", value=(meta.chapter or "") if meta else "")
        part = col2.text_input("Part", value=(meta.part or "") if meta else "")
        doc_type = col3.text_input("Type", value=(meta.type or "") if meta else "")
        col1, col2 = st.columns(2)
        schedule = col1.text_input("Schedule", value=(meta.schedule or "") if meta else "")
        schedule_title = col2.text_input(
            "Schedule Title", value=(meta.schedule_title or "") if meta else ""
        )
        side_notes = st.text_area(
            "Side Notes (one per line)", value="\n".join(meta.side_notes) if meta else ""
        )
        references = st.text_area(
            "References (one per line)", value="\n".join(meta.references) if meta else ""
        )
        if st.form_submit_button("Save" if record else "Add Document", type="primary"):
            return document_form_data(
                doc_id,
                text,
                int(page_num),
                chapter,
                part,
                schedule,
                schedule_title,
                doc_type,
                side_notes,
                references,
                base=record.model_dump(exclude={"internal_id"}) if record else None,
            )
    return None


def render_form(session: ReviewSession, record: Record | None) -> dict[str, Any] | None:
    if session.kind == RecordKind.ENTRY:
        return render_entry_form(session, record)
    return render_document_form(session, record)


def render_record_actions(session: ReviewSession, view: list[Record]) -> None:
    """View, edit, approve and delete one record picked from the view."""
    if not view:
        return

    st.subheader("Review")
    labels = {record_label(r): r.identity for r in view}
    identity = labels[st.selectbox("Record", list(labels))]
    record = session.get(identity)

    if record.approved:
        st.success(
            f"Approved by **{record.approved_by}** on {format_timestamp(record.date_approved)}"
        )
    else:
        st.warning("Pending approval")

    col1, col2, col3 = st.columns(3)
    with col1:
        if not record.approved:
            if st.button(":white_check_mark: Approve", type="primary", use_container_width=True):
                if run_action(lambda: session.approve(identity)):
                    st.rerun()
        elif st.button(":leftwards_arrow_with_hook: Revoke Approval", use_container_width=True):
            if run_action(lambda: session.revoke(identity)):
                st.rerun()
    with col2:
        armed = session.delete_confirmation.is_armed(identity)
        label = ":warning: Click again to confirm" if armed else ":wastebasket: Delete"
        if st.button(label, use_container_width=True):
            try:
                deleted = session.request_delete(identity)
            except CuratorError as e:
                st.error(str(e))
            else:
                if deleted:
                    st.rerun()
                st.info(
                    f"Click delete again within {settings.DELETE_CONFIRM_SECONDS:g} "
                    "seconds to confirm."
                )
    with col3:
        with st.popover(":mag: Raw JSON", use_container_width=True):
            st.json(record.model_dump(mode="json"))

    with st.expander(":pencil2: Edit", expanded=False):
        data = render_form(session, record)
        if data is not None:
            if run_action(lambda: session.edit(identity, data), "Saved"):
                st.rerun()


def render_add(session: ReviewSession) -> None:
    with st.expander(":heavy_plus_sign: Add New", expanded=False):
        position, target = None, None
        if session.kind == RecordKind.DOCUMENT and len(session):
            col1, col2 = st.columns(2)
            position = col1.radio(
                "Insert", [p.value for p in InsertPosition], index=1, horizontal=True
            )
            target = col2.number_input(
                "Row", min_value=1, max_value=len(session), value=len(session), step=1
            ) - 1
        data = render_form(session, None)
        if data is not None:
            if run_action(lambda: session.add(data, position, target), "Added"):
                st.rerun()


def render_export(session: ReviewSession) -> None:
    st.subheader("Export")
    formats = codec.supported_formats(session.kind)
    cols = st.columns(len(formats) + 1)
    for col, fmt in zip(cols, formats):
        col.download_button(
            f":arrow_down: {fmt.value.upper()}",
            data=codec.encode(session.records, session.kind, fmt),
            file_name=codec.export_filename(session.kind, fmt, session.label),
            mime=codec.MEDIA_TYPES[fmt],
            use_container_width=True,
            disabled=not len(session),
        )
    with cols[-1]:
        if st.button(":file_cabinet: Archive on server", use_container_width=True, disabled=not len(session)):
            if run_action(lambda: session.export(codec.ExportFormat.JSON)):
                st.success(f"Saved a copy to {settings.EXPORTS_DIR}")


def render_clear(session: ReviewSession) -> None:
    with st.expander(":broom: Clear Dataset", expanded=False):
        st.warning("This deletes the stored dataset. Export it first if you need it.")
        confirm = st.checkbox("I understand", key=f"confirm_clear_{session.kind.value}")
        if st.button("Clear Dataset", disabled=not confirm):
            if run_action(session.clear, "Dataset cleared"):
                st.rerun()


# =============================================================================
# Main
# =============================================================================


def main() -> None:
    st.set_page_config(
        page_title=settings.APP_NAME,
        page_icon=":clipboard:",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    st.sidebar.title(settings.APP_NAME)
    page = st.sidebar.radio("Workspace", list(PAGES), label_visibility="collapsed")
    kind = PAGES[page]

    st.title(page)
    if kind == RecordKind.DOCUMENT and not render_access_gate():
        return

    session = get_review_session(kind)
    if not render_username(session):
        return

    if session.named_store is not None:
        render_resume_prompt(session)
        render_dataset_management(session)

    render_import(session)
    if not len(session):
        st.info("No dataset loaded. Import a file or add records to get started.")
    else:
        render_stats(session)
        st.divider()
        view = render_table(session)
        render_record_actions(session, view)

    render_add(session)
    st.divider()
    render_export(session)
    render_clear(session)

    st.sidebar.divider()
    st.sidebar.caption(f"Storage: {settings.storage_backend}")
    st.sidebar.caption(f"{settings.APP_NAME} v{__version__}")


if __name__ == "__main__":
    main()
