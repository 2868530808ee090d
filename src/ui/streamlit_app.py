"""
Streamlit UI -- Query History browser.

Features:
  - Search by text, datasource and time range
  - Starred-only toggle and sort order
  - Paging through results
  - Star / unstar, comment editing and deletion per entry
  - Import of a legacy history export (JSON list)
"""
import json
from datetime import date, datetime, time

import httpx
import pandas as pd
import streamlit as st


API_BASE = "http://localhost:8000/api/query-history"
_TIMEOUT = 10

st.set_page_config(
    page_title="Query History",
    page_icon="star",
    layout="wide",
    initial_sidebar_state="expanded",
)


if "page" not in st.session_state:
    st.session_state.page = 1


def _headers() -> dict[str, str]:
    return {
        "X-Org-Id": str(st.session_state.org_id),
        "X-User-Id": str(st.session_state.user_id),
    }


def _call(method: str, path: str = "", **kwargs) -> dict | None:
    """Call the history API; show the error inline and return None on failure."""
    try:
        resp = httpx.request(method, f"{API_BASE}{path}", headers=_headers(), timeout=_TIMEOUT, **kwargs)
        resp.raise_for_status()
        return resp.json()
    except httpx.ConnectError:
        st.error("Cannot reach the API. Start it with:\n```\nuvicorn src.api.main:app --reload\n```")
    except httpx.HTTPStatusError as exc:
        st.error(f"API returned {exc.response.status_code}: {exc.response.json().get('message', exc.response.text)}")
    return None


def _epoch(d: date | None, end_of_day: bool = False) -> int:
    if d is None:
        return 0
    return int(datetime.combine(d, time.max if end_of_day else time.min).timestamp())


with st.sidebar:
    st.title("Identity")
    st.number_input("Organization id", min_value=1, value=1, key="org_id")
    st.number_input("User id", min_value=1, value=1, key="user_id")

    st.divider()
    st.subheader("Filters")
    search_string = st.text_input("Search comments and queries", placeholder="e.g. rate(, debug")
    datasources = st.text_input("Datasource UIDs (comma separated)")
    only_starred = st.toggle("Starred only")
    sort = st.radio("Sort", ["time-desc", "time-asc"], format_func=lambda s: "Newest first" if s == "time-desc" else "Oldest first")
    date_from = st.date_input("From", value=None)
    date_to = st.date_input("To", value=None)
    limit = st.select_slider("Page size", options=[10, 25, 50, 100], value=25)

    st.divider()
    with st.expander("Import legacy history", expanded=False):
        upload = st.file_uploader("Legacy export (.json)", type="json")
        if upload is not None and st.button("Import", use_container_width=True):
            records = json.load(upload)
            data = _call("POST", "/migrate", json={"queries": records})
            if data:
                st.success(f"Imported {data['total_count']} queries ({data['starred_count']} starred)")


st.title("Query History")

params = {
    "searchString": search_string,
    "onlyStarred": only_starred,
    "sort": sort,
    "page": st.session_state.page,
    "limit": limit,
    "from": _epoch(date_from),
    "to": _epoch(date_to, end_of_day=True),
}
ds_list = [d.strip() for d in datasources.split(",") if d.strip()]
if ds_list:
    params["datasourceUid"] = ds_list

result = _call("GET", "", params=params)
if result is None:
    st.stop()

total = result["total_count"]
pages = max(1, -(-total // result["per_page"]))
st.caption(f"{total} queries · page {result['page']} of {pages}")

if result["items"]:
    df = pd.DataFrame(result["items"])
    df["created_at"] = pd.to_datetime(df["created_at"], unit="s")
    st.dataframe(
        df[["starred", "created_at", "datasource_uid", "comment", "uid"]],
        use_container_width=True,
        hide_index=True,
    )
else:
    st.info("No queries match the current filters.")

for item in result["items"]:
    label = ("★ " if item["starred"] else "") + (item["comment"] or item["uid"])
    with st.expander(label, expanded=False):
        st.json(item["queries"])
        c1, c2, c3 = st.columns(3)
        if item["starred"]:
            if c1.button("Unstar", key=f"unstar_{item['uid']}"):
                _call("DELETE", f"/star/{item['uid']}")
                st.rerun()
        elif c1.button("Star", key=f"star_{item['uid']}"):
            _call("POST", f"/star/{item['uid']}")
            st.rerun()
        with c2.form(key=f"comment_form_{item['uid']}"):
            comment = st.text_input("Comment", value=item["comment"], key=f"comment_{item['uid']}")
            if st.form_submit_button("Save comment") and comment != item["comment"]:
                if _call("PATCH", f"/{item['uid']}", json={"comment": comment}) is not None:
                    st.rerun()
        if c3.button("Delete", key=f"delete_{item['uid']}"):
            _call("DELETE", f"/{item['uid']}")
            st.rerun()

prev_col, next_col = st.columns(2)
if prev_col.button("Previous", disabled=st.session_state.page <= 1, use_container_width=True):
    st.session_state.page -= 1
    st.rerun()
if next_col.button("Next", disabled=st.session_state.page >= pages, use_container_width=True):
    st.session_state.page += 1
    st.rerun()
