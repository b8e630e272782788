"""
app.py
Streamlit Tutoring Database (hours-based packages, HST, lesson tracking).
Run: streamlit run app.py
"""

from __future__ import annotations

from datetime import date

import pandas as pd
import streamlit as st

import auth
import config
import db
import heatmap
import records
import summaries
import utils
from models import CLIENT_STATUSES, LESSON_BILLING, PAYMENT_METHODS, PAYMENT_STATUSES, ClientSummary

st.set_page_config(page_title="Tutoring Database", layout="wide")


def init_once():
    config.configure_logging()
    db.init_db(auth.hash_password(config.DEFAULT_ADMIN_PASSWORD))


def require_login():
    if "logged_in" not in st.session_state:
        st.session_state.logged_in = False
    if "email" not in st.session_state:
        st.session_state.email = None


def sign_out():
    st.session_state.logged_in = False
    st.session_state.email = None


def login_screen():
    st.title("🔐 Tutoring Database Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        email = st.text_input("Email", value=config.DEFAULT_ADMIN_EMAIL)
        password = st.text_input("Password", type="password")
        if st.button("Sign in", type="primary"):
            if auth.login(email, password):
                st.session_state.logged_in = True
                st.session_state.email = auth.normalize_email(email)
                st.rerun()
            else:
                st.error("Invalid email or password.")

    with col2:
        st.info(
            "First run creates a default staff account:\n\n"
            f"- email: **{config.DEFAULT_ADMIN_EMAIL}**\n"
            "- password: **admin123** (unless overridden)\n\n"
            "You will be forced to change it on first login."
        )


def password_fields() -> tuple[str, str]:
    new1 = st.text_input("New password", type="password")
    new2 = st.text_input("Confirm new password", type="password")
    return new1, new2


def password_error(new1: str, new2: str) -> str | None:
    if len(new1) < 6:
        return "Password must be at least 6 characters."
    if new1 != new2:
        return "Passwords do not match."
    return None


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")

    st.warning("You must change the default password before using the app.")
    new1, new2 = password_fields()
    if st.button("Update password", type="primary"):
        error = password_error(new1, new2)
        if error:
            st.error(error)
            return
        auth.change_password(st.session_state.email, new1)
        st.success("Password updated. You can continue.")
        st.rerun()


# ---------- Recompute ----------

def load_state():
    """Fresh snapshot + summaries on every run; nothing is cached between reruns."""
    clients, payments, lessons = records.load_snapshot()
    client_summaries = summaries.compute_client_summaries(clients, payments, lessons)
    return clients, payments, lessons, client_summaries


def show_record_error(exc: records.RecordError):
    for e in exc.errors:
        st.error(e)


def client_labels(clients) -> dict[str, int]:
    return {c.label: c.id for c in clients}


# ---------- Clients ----------

def clients_table(clients, client_summaries) -> pd.DataFrame:
    rows = []
    for c in clients:
        s = client_summaries.get(c.id) or ClientSummary()
        rows.append({
            "id": c.id,
            "UID": c.uid,
            "Name": c.full_name,
            "Status": c.status,
            "Purchased": utils.fmt_hours(s.total_purchased),
            "Used": utils.fmt_hours(s.total_used),
            "Remaining": utils.fmt_hours(s.remaining),
            "Last lesson": utils.fmt_date(s.last_lesson_date),
            "Teacher": c.teacher or "-",
        })
    return pd.DataFrame(rows)


def client_form(existing=None):
    if existing:
        st.subheader(f"✏️ Edit Client ({existing.uid})")
    else:
        st.subheader("➕ Add New Client")
    form_key = existing.id if existing else "new"

    col1, col2, col3 = st.columns(3)
    with col1:
        uid = st.text_input("UID", value=(existing.uid if existing else ""))
        full_name = st.text_input("Full name", value=(existing.full_name if existing else ""))
        status = st.selectbox(
            "Status",
            options=list(CLIENT_STATUSES),
            index=(CLIENT_STATUSES.index(existing.status) if existing and existing.status in CLIENT_STATUSES else 0),
            key=f"client_status_{form_key}",
        )
    with col2:
        email = st.text_input("Email", value=(existing.email or "" if existing else ""))
        telephone = st.text_input("Telephone", value=(existing.telephone or "" if existing else ""))
        lead_source = st.text_input("Lead source", value=(existing.lead_source or "" if existing else ""))
    with col3:
        teacher = st.text_input(
            "Teacher",
            value=(existing.teacher or "" if existing else config.DEFAULT_TEACHER),
            key=f"client_teacher_{form_key}",
        )
        notes = st.text_area("Notes", value=(existing.notes or "" if existing else ""), key=f"client_notes_{form_key}")

    if st.button("Save client", type="primary"):
        data = {
            "uid": uid, "full_name": full_name, "status": status, "email": email,
            "telephone": telephone, "lead_source": lead_source, "teacher": teacher, "notes": notes,
        }
        try:
            records.save_client(data, client_id=existing.id if existing else None)
        except records.RecordError as exc:
            show_record_error(exc)
            return
        st.session_state.edit_client_id = None
        st.success("Client updated." if existing else "Client added.")
        st.rerun()


def clients_page(clients, client_summaries):
    st.header("👥 Clients")

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name/UID/email/phone)")
        status_filter = st.selectbox("Status", ["All"] + list(CLIENT_STATUSES), key="client_status_filter")
        teacher_filter = st.selectbox("Teacher", ["All Teachers"] + records.teachers(clients), key="client_teacher_filter")

    filtered = records.filter_clients(
        clients,
        search=search,
        status="" if status_filter == "All" else status_filter,
        teacher="" if teacher_filter == "All Teachers" else teacher_filter,
    )
    if filtered:
        st.dataframe(clients_table(filtered, client_summaries), use_container_width=True, hide_index=True)
    else:
        st.caption("No clients found. Add your first client!")

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select client")
        options = client_labels(filtered)
        selected = st.selectbox("Client", options=["(none)"] + list(options.keys()))

    with colB:
        if selected != "(none)":
            client_id = options[selected]
            st.subheader("Client actions")
            c1, c2 = st.columns(2)
            with c1:
                if st.button("Edit"):
                    st.session_state.edit_client_id = client_id
                    st.rerun()
            with c2:
                impact = records.client_delete_impact(client_id)
                st.caption(
                    f"Deleting also removes {impact['payments']} payment(s) and {impact['lessons']} lesson(s)."
                )
                delete_confirm = st.checkbox("Confirm delete", value=False, key="del_client_confirm")
                if st.button("Delete", type="secondary", disabled=not delete_confirm):
                    records.delete_client(client_id)
                    st.success("Client deleted.")
                    st.rerun()

    st.divider()

    if st.session_state.get("edit_client_id"):
        existing = records.get_client(st.session_state.edit_client_id)
        if existing:
            client_form(existing=existing)
        if st.button("Cancel edit"):
            st.session_state.edit_client_id = None
            st.rerun()
    else:
        client_form(existing=None)


# ---------- Payments ----------

def payments_page(clients, payments):
    st.header("💳 Payments")

    if not clients:
        st.info("No clients yet. Add a client first.")
        return

    totals = summaries.payment_totals(payments)
    c1, c2, c3 = st.columns(3)
    c1.metric("Total revenue", f"${totals.revenue:.2f}")
    c2.metric("Hours sold", f"{totals.hours:.1f}")
    c3.metric("Outstanding", f"${totals.outstanding:.2f}")

    st.subheader("Add payment")
    options = client_labels(clients)
    col1, col2, col3 = st.columns(3)
    with col1:
        chosen = st.selectbox("Client", list(options.keys()), key="payment_client")
        pay_date = st.date_input("Payment date", value=date.today(), key="payment_date").isoformat()
        package_type = st.text_input("Package", value="")
        hours = st.number_input("Hours purchased", min_value=0.0, value=10.0, step=0.5)
    with col2:
        amount_paid = st.number_input("Amount paid", min_value=0.0, value=0.0, step=10.0)
        hourly_rate = st.number_input("Hourly rate", min_value=0.0, value=0.0, step=5.0)
        apply_tax = st.checkbox("Apply HST")
        hst, total = utils.calc_hst(amount_paid, apply_tax)
        st.caption(f"HST: {utils.fmt_money(hst)} | Total: {utils.fmt_money(total)}")
    with col3:
        status = st.selectbox("Status", list(PAYMENT_STATUSES))
        method = st.selectbox("Payment method", ["(none)"] + list(PAYMENT_METHODS))
        year = st.number_input("Year", min_value=2000, max_value=2100, value=date.today().year, step=1)
        notes = st.text_input("Notes", value="", key="payment_notes")

    if st.button("Record payment", type="primary"):
        try:
            records.add_payment({
                "client_id": options[chosen], "payment_date": pay_date, "package_type": package_type,
                "hours_purchased": hours, "amount_paid": amount_paid, "hourly_rate": hourly_rate,
                "apply_tax": apply_tax, "hst_amount": hst, "total_payment": total, "status": status,
                "payment_method": None if method == "(none)" else method, "year": int(year), "notes": notes,
            })
        except records.RecordError as exc:
            show_record_error(exc)
        else:
            st.success("Payment added.")
            st.rerun()

    st.divider()

    st.subheader("Payment history")
    if not payments:
        st.caption("No payments recorded yet.")
        return
    by_id = {c.id: c for c in clients}
    df = pd.DataFrame([{
        "id": p.id,
        "Date": utils.fmt_date(p.payment_date),
        "Client": by_id[p.client_id].label if p.client_id in by_id else "Unknown",
        "Package": p.package_type or "-",
        "Hours": utils.fmt_hours(p.hours_purchased),
        "Amount": utils.fmt_money(p.amount_paid),
        "HST": utils.fmt_money(p.hst_amount),
        "Total": utils.fmt_money(p.total_payment),
        "Status": p.status,
    } for p in payments])
    st.dataframe(df, use_container_width=True, hide_index=True)

    to_delete = st.selectbox("Delete payment (id)", ["(none)"] + [str(p.id) for p in payments])
    if to_delete != "(none)" and st.button("Delete payment", type="secondary"):
        records.delete_payment(int(to_delete))
        st.success("Payment deleted.")
        st.rerun()


# ---------- Lessons ----------

def lessons_page(clients, lessons):
    st.header("📚 Lessons")

    if not clients:
        st.info("No clients yet. Add a client first.")
        return

    totals = summaries.lesson_totals(lessons)
    c1, c2 = st.columns(2)
    c1.metric("Lessons", totals.count)
    c2.metric("Hours taught", f"{totals.hours:.1f}")

    st.subheader("Add lesson")
    options = client_labels(clients)
    col1, col2 = st.columns(2)
    with col1:
        chosen = st.selectbox("Client", list(options.keys()), key="lesson_client")
        lesson_date = st.date_input("Lesson date", value=date.today(), key="lesson_date").isoformat()
        hours = st.number_input("Hours taught", min_value=0.0, value=1.0, step=0.5)
        teacher = st.text_input("Teacher", value=config.DEFAULT_TEACHER, key="lesson_teacher")
    with col2:
        topic = st.text_input("Topic", value="")
        billing = st.selectbox("Paid or probono", list(LESSON_BILLING))
        teacher_paid = st.checkbox("Teacher paid")
        paid_teacher = st.date_input("Teacher paid on", value=date.today(), disabled=not teacher_paid).isoformat()
        notes = st.text_input("Notes", value="", key="lesson_notes")

    if st.button("Record lesson", type="primary"):
        try:
            records.add_lesson({
                "client_id": options[chosen], "lesson_date": lesson_date, "hours_taught": hours,
                "teacher": teacher, "lesson_topic": topic, "paid_or_probono": billing,
                "paid_teacher": paid_teacher if teacher_paid else None, "notes": notes,
            })
        except records.RecordError as exc:
            show_record_error(exc)
        else:
            st.success("Lesson added.")
            st.rerun()

    st.divider()

    st.subheader("Lesson history")
    if not lessons:
        st.caption("No lessons recorded yet.")
        return
    by_id = {c.id: c for c in clients}
    df = pd.DataFrame([{
        "id": l.id,
        "Date": utils.fmt_date(l.lesson_date),
        "Client": by_id[l.client_id].label if l.client_id in by_id else "Unknown",
        "Hours": utils.fmt_hours(l.hours_taught),
        "Topic": l.lesson_topic or "-",
        "Teacher": l.teacher or "-",
        "Billing": l.paid_or_probono,
        "Teacher paid": utils.fmt_date(l.paid_teacher),
    } for l in lessons])
    st.dataframe(df, use_container_width=True, hide_index=True)

    to_delete = st.selectbox("Delete lesson (id)", ["(none)"] + [str(l.id) for l in lessons])
    if to_delete != "(none)" and st.button("Delete lesson", type="secondary"):
        records.delete_lesson(int(to_delete))
        st.success("Lesson deleted.")
        st.rerun()


# ---------- Reports ----------

def reports_page(clients, payments, lessons, client_summaries):
    st.header("🧾 Reports")

    overall = summaries.overall_totals(clients, client_summaries)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Active clients", overall.active_clients)
    c2.metric("Hours purchased", f"{overall.purchased:.1f}")
    c3.metric("Hours used", f"{overall.used:.1f}")
    c4.metric("Hours remaining", f"{overall.remaining:.1f}")

    st.divider()

    st.subheader("Clients with hours remaining")
    remaining = summaries.hours_remaining_report(clients, client_summaries)
    if remaining:
        st.dataframe(pd.DataFrame([{
            "UID": c.uid,
            "Name": c.full_name,
            "Purchased": utils.fmt_hours(s.total_purchased),
            "Used": utils.fmt_hours(s.total_used),
            "Remaining": utils.fmt_hours(s.remaining),
            "Last lesson": utils.fmt_date(s.last_lesson_date),
        } for c, s in remaining]), use_container_width=True, hide_index=True)
    else:
        st.caption("No clients with hours remaining.")

    st.subheader("Packages")
    packages = summaries.package_report(payments)
    if packages:
        st.dataframe(pd.DataFrame([{
            "Package": p.package,
            "Sold": p.count,
            "Hours": utils.fmt_hours(p.hours),
            "Revenue": f"${p.revenue:.2f}",
        } for p in packages]), use_container_width=True, hide_index=True)
    else:
        st.caption("No payment data available.")

    st.divider()

    st.subheader("Lesson activity")
    months = st.radio(
        "Range (months)",
        options=list(config.HEATMAP_RANGES),
        index=heatmap.range_index(config.HEATMAP_RANGES, config.DEFAULT_HEATMAP_MONTHS),
        horizontal=True,
    )
    weeks = heatmap.build_heatmap(lessons, months)
    st.markdown(heatmap.render_heatmap_html(weeks), unsafe_allow_html=True)

    st.divider()

    st.subheader("Export to CSV")
    e1, e2, e3 = st.columns(3)
    for col, name, rows in ((e1, "clients", clients), (e2, "payments", payments), (e3, "lessons", lessons)):
        with col:
            if rows:
                st.download_button(
                    f"Download {name}.csv",
                    data=utils.records_to_csv_bytes(rows),
                    file_name=f"{name}.csv",
                    mime="text/csv",
                )
            else:
                st.caption(f"No {name} to export.")


def settings_page():
    st.header("⚙️ Settings")

    st.subheader("Change password")
    new1, new2 = password_fields()
    if st.button("Update password", type="primary"):
        error = password_error(new1, new2)
        if error:
            st.error(error)
        else:
            auth.change_password(st.session_state.email, new1)
            st.success("Password updated.")

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert 3 sample clients with payments and lessons (adds new rows each run).")
    if st.button("Insert sample data"):
        utils.insert_sample_data()
        st.success("Sample data inserted.")
        st.rerun()


def main_app():
    st.sidebar.title("📘 Tutoring Database")
    st.sidebar.caption(f"👤 {st.session_state.email}")

    pages = ["Clients", "Payments", "Lessons", "Reports", "Settings"]
    if "page" not in st.session_state:
        st.session_state.page = "Clients"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Sign out"):
        sign_out()
        st.rerun()

    clients, payments, lessons, client_summaries = load_state()

    if st.session_state.page == "Clients":
        clients_page(clients, client_summaries)
    elif st.session_state.page == "Payments":
        payments_page(clients, payments)
    elif st.session_state.page == "Lessons":
        lessons_page(clients, lessons)
    elif st.session_state.page == "Reports":
        reports_page(clients, payments, lessons, client_summaries)
    elif st.session_state.page == "Settings":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    require_login()

    if not st.session_state.logged_in:
        login_screen()
        return

    # Force password change on first login after DB creation
    if db.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()
