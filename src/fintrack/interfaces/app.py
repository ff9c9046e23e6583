# src/fintrack/interfaces/app.py
# Streamlit UI for FinTrack
# - Upload & Review: statement PDF -> AI extraction -> edit / approve -> sync to Sheets
# - Dashboard: month + bank filters, totals, trend / mix / tag / bank charts
# - Settings: sync destination, tags, banks, reload from / push config to the Sheet

from __future__ import annotations

from urllib.parse import quote

import pandas as pd
import requests
import streamlit as st

from fintrack import config
from fintrack.domain.models import ALL, DEFAULT_TAG
from fintrack.logging_setup import configure_logging, get_logger
from fintrack.services.analytics import format_amount


# -----------------------------
# Page config
# -----------------------------
configure_logging()
logger = get_logger(__name__)

st.set_page_config(page_title="FinTrack", layout="wide")
st.title("💰 FinTrack")

API_BASE = config.API_BASE


def _detail(resp: requests.Response) -> str:
    try:
        return resp.json().get("detail") or resp.text
    except ValueError:
        return resp.text


def _call(method: str, path: str, timeout: int = 60, **kwargs):
    url = f"{API_BASE}{path}"
    resp = requests.request(method, url, timeout=timeout, **kwargs)
    if resp.status_code >= 400:
        detail = _detail(resp)
        logger.warning("%s %s -> %s: %s", method, path, resp.status_code, detail)
        raise RuntimeError(detail)
    return resp.json()


def api_get(path: str, params: dict | None = None):
    return _call("GET", path, params=params or {})


def api_post_json(path: str, payload: dict | None = None, timeout: int = 60):
    return _call("POST", path, json=payload or {}, timeout=timeout)


def api_put_json(path: str, payload: dict):
    return _call("PUT", path, json=payload)


def api_patch_json(path: str, payload: dict):
    return _call("PATCH", path, json=payload)


def api_delete(path: str):
    return _call("DELETE", path)


def api_post_file(path: str, file_bytes: bytes, filename: str, mime: str, timeout: int = 300):
    files = {"file": (filename, file_bytes, mime)}
    return _call("POST", path, files=files, timeout=timeout)


# -----------------------------
# State
# -----------------------------
try:
    state = api_get("/state")
except Exception as e:
    st.error(f"Cannot reach the FinTrack API at {API_BASE}: {e}")
    st.stop()

if state.get("notice"):
    st.success(state["notice"])
if state.get("error"):
    st.warning(state["error"])
if state.get("activeTab") == "dashboard" and not state.get("working"):
    st.info("Everything is synced. Open the Dashboard tab to see your insights.")

tab_upload, tab_dash, tab_settings = st.tabs(["📤 Upload & Review", "📊 Dashboard", "⚙️ Settings"])


# -----------------------------
# Upload & Review tab
# -----------------------------
with tab_upload:
    st.subheader("Analyze statement")
    st.caption("Upload a PDF bank statement. The AI extracts dates, amounts and categories.")

    pdf = st.file_uploader("Select bank PDF", type=["pdf"], key="pdf_upload")
    if pdf is not None and st.button("Parse statement", key="btn_parse_stmt", disabled=state["isProcessing"]):
        parsed_ok = False
        with st.spinner("AI is reading your statement..."):
            try:
                api_post_file("/statements/parse", pdf.getvalue(), pdf.name, pdf.type or "application/pdf")
                parsed_ok = True
            except Exception as e:
                st.error(str(e))
        if parsed_ok:
            st.rerun()

    working = state.get("working") or []
    if working:
        st.divider()

        c1, c2, c3 = st.columns([1, 1, 2])
        with c1:
            label = "Deselect all" if state["allApproved"] else "Select all"
            if st.button(label, key="btn_toggle_all"):
                api_post_json("/working/toggle-all")
                st.rerun()
        with c2:
            st.write(f"{state['approvedCount']} selected for sync")
        with c3:
            nothing_selected = state["approvedCount"] == 0
            if st.button(
                "☁️ Approve & Save to Sheets",
                key="btn_sync",
                type="primary",
                disabled=state["isSyncing"] or nothing_selected,
            ):
                synced = False
                try:
                    api_post_json("/sync")
                    synced = True
                except Exception as e:
                    st.error(str(e))
                if synced:
                    st.rerun()

        df_w = pd.DataFrame(working)
        df_w["sync"] = df_w["status"] == "approved"
        tag_options = [DEFAULT_TAG] + [t for t in state["tags"] if t != DEFAULT_TAG]
        extra_tags = [t for t in df_w["tag"].unique().tolist() if t not in tag_options]

        edited = st.data_editor(
            df_w[["sync", "date", "bankName", "description", "amount", "direction", "type", "tag", "id"]],
            column_config={
                "sync": st.column_config.CheckboxColumn("Sync"),
                "date": st.column_config.TextColumn("Date"),
                "bankName": st.column_config.TextColumn("Bank"),
                "description": st.column_config.TextColumn("Description"),
                "amount": st.column_config.NumberColumn("Amount", min_value=0.0, format="%.2f"),
                "direction": st.column_config.SelectboxColumn("Direction", options=["Spent", "Received"]),
                "type": st.column_config.SelectboxColumn("Category", options=["Personal", "Office"]),
                "tag": st.column_config.SelectboxColumn("Tag", options=tag_options + extra_tags),
                "id": None,
            },
            hide_index=True,
            width="stretch",
            key="working_editor",
        )

        # Push row edits back to the API
        fields = ["date", "bankName", "description", "amount", "direction", "type", "tag"]
        changed = False
        for (_, before), (_, after) in zip(df_w.iterrows(), edited.iterrows()):
            patch = {f: after[f] for f in fields if after[f] != before[f]}
            if bool(after["sync"]) != bool(before["sync"]):
                patch["status"] = "approved" if after["sync"] else "pending"
            if patch:
                if "amount" in patch:
                    patch["amount"] = float(patch["amount"])
                try:
                    api_patch_json(f"/working/{after['id']}", patch)
                    changed = True
                except Exception as e:
                    st.error(f"Update failed: {e}")
        if changed:
            st.rerun()

        to_delete = st.multiselect(
            "Remove entries",
            options=[t["id"] for t in working],
            format_func=lambda i: next(
                f"{t['date']} | {t['description']} | {format_amount(t['amount'])}" for t in working if t["id"] == i
            ),
            key="delete_select",
        )
        if to_delete and st.button("🗑️ Remove selected", key="btn_delete"):
            for tx_id in to_delete:
                api_delete(f"/working/{tx_id}")
            st.rerun()


# -----------------------------
# Dashboard tab
# -----------------------------
with tab_dash:
    st.subheader("Financial insights")

    base = api_get("/dashboard")
    f1, f2 = st.columns(2)
    with f1:
        month = st.selectbox(
            "Period",
            base["months"],
            format_func=lambda m: "Complete history" if m == ALL else m,
            key="dash_month",
        )
    with f2:
        bank = st.selectbox("Bank", base["banks"], format_func=lambda b: "All banks" if b == ALL else b, key="dash_bank")

    dash = api_get("/dashboard", params={"month": month, "bank": bank})
    stats = dash["stats"]

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Total Spent", format_amount(stats["total_spent"]))
    m2.metric("Total Received", format_amount(stats["total_received"]))
    m3.metric("Personal Expense", format_amount(stats["personal_spending"]))
    m4.metric("Office Expense", format_amount(stats["office_spending"]))

    st.divider()

    if dash["count"] == 0:
        st.info("No synced transactions for this selection yet.")
    else:
        c1, c2 = st.columns([2, 1])

        with c1:
            st.caption("Cash flow trend")
            df_trend = pd.DataFrame(dash["trend"]).set_index("date")
            st.area_chart(df_trend[["spent", "received"]], height=300)

        with c2:
            st.caption("Expense mix")
            df_mix = pd.DataFrame(dash["expense_mix"]).set_index("name")
            st.bar_chart(df_mix["value"], height=300)

        c3, c4 = st.columns(2)

        with c3:
            st.caption("Spending by category tag")
            if dash["tags"]:
                df_tags = pd.DataFrame(dash["tags"]).set_index("name")
                st.bar_chart(df_tags["value"], height=280, horizontal=True)
            else:
                st.info("No spending in this selection.")

        with c4:
            st.caption("By bank")
            df_banks = pd.DataFrame(dash["banks_breakdown"]).set_index("name")
            st.bar_chart(df_banks[["spent", "received"]], height=280)


# -----------------------------
# Settings tab
# -----------------------------
with tab_settings:
    st.subheader("Sync destination")
    url = st.text_input("Google Apps Script URL", value=state["scriptUrl"], key="script_url")
    if url != state["scriptUrl"]:
        try:
            api_put_json("/config/endpoint", {"url": url})
            st.success("Saved.")
        except Exception as e:
            st.error(str(e))

    r1, r2 = st.columns(2)
    with r1:
        if st.button("🔄 Reload from Sheet", key="btn_reload", disabled=state["isSyncing"]):
            reloaded = False
            try:
                api_post_json("/remote/reload", timeout=120)
                reloaded = True
            except Exception as e:
                st.error(f"Reload failed: {e}")
            if reloaded:
                st.rerun()
    with r2:
        if st.button("📤 Push tags & banks to Sheet", key="btn_push_cfg"):
            try:
                api_post_json("/config/push")
                st.success("Config sent.")
            except Exception as e:
                st.error(f"Push failed: {e}")

    st.divider()
    t1, t2 = st.columns(2)

    with t1:
        st.subheader("Tags")
        st.write(", ".join(state["tags"]) or "No tags yet.")
        new_tag = st.text_input("New tag", key="new_tag")
        if st.button("Add tag", key="btn_add_tag") and new_tag.strip():
            api_post_json("/tags", {"name": new_tag})
            st.rerun()
        drop_tag = st.selectbox("Remove tag", [""] + state["tags"], key="drop_tag")
        if drop_tag and st.button("Remove tag", key="btn_drop_tag"):
            api_delete(f"/tags/{quote(drop_tag, safe='')}")
            st.rerun()

    with t2:
        st.subheader("Banks")
        st.write(", ".join(state["banks"]) or "No banks yet.")
        new_bank = st.text_input("New bank", key="new_bank")
        if st.button("Add bank", key="btn_add_bank") and new_bank.strip():
            api_post_json("/banks", {"name": new_bank})
            st.rerun()
        drop_bank = st.selectbox("Remove bank", [""] + state["banks"], key="drop_bank")
        if drop_bank and st.button("Remove bank", key="btn_drop_bank"):
            api_delete(f"/banks/{quote(drop_bank, safe='')}")
            st.rerun()
