# app.py
import logging
from datetime import date, timedelta

import streamlit as st
from sqlalchemy.exc import SQLAlchemyError

from aggregator import (SHARE_CATEGORIES, aggregate, history,
                        recommended_actions, records_frame, sort_newest_first,
                        trend_label)
from assistant import (DEFAULT_TIPS, FALLBACK_REPLY, AssistantError,
                       EcoAssistant)
from auth import current_identity, login, logout
from charts import (CATEGORY_LABELS, build_report_zip, category_pie,
                    history_bar, plot_gauge)
from config import configure_logging, load_settings
from database import (InvalidCalculation, Session, create_calculation,
                      delete_calculation, init_db, list_calculations)
from emissions import (CATEGORIES, DEFAULT_FACTORS, RESULT_KEYS, ActivityInput, Period,
                       Subject, SubjectKind, compute, reduction_suggestions)

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Carbon Footprint Calculator", layout="wide")

# 1. Settings, logging & DB
settings = load_settings()
configure_logging(settings.log_level)


@st.cache_resource
def _engine(url, timeout):
    return init_db(url, timeout)


_engine(settings.database_url, settings.request_timeout)

# 2. Authentication
identity = current_identity(settings)
if identity is None:
    login(settings)
    st.stop()

st.sidebar.write(f"Signed in as **{identity.name}**")
if st.sidebar.button("Logout"):
    logout()

# 3. Sidebar menu
menu = st.sidebar.radio("Navigate", [
    "Calculator",
    "Dashboard",
    "Eco Assistant",
    "Download",
    "About",
])

db = Session()


def load_records():
    return sort_newest_first(list_calculations(db, identity.user_id))


# 4. Handle each menu choice
try:
    if menu == "Calculator":
        st.header("Carbon Footprint Calculator")

        col1, col2 = st.columns(2)
        with col1:
            kind = st.radio("Who is this calculation for?", ["Individual", "Family"], horizontal=True)
            household_size = 1
            if kind == "Family":
                household_size = st.number_input("Household size", min_value=1, value=1, step=1)
        with col2:
            today = date.today()
            date_range = st.date_input("Reporting period", value=(today, today + timedelta(days=7)))

        if isinstance(date_range, (tuple, list)) and len(date_range) == 2:
            period = Period(date_range[0], date_range[1])
        else:
            st.warning("Please select both a start and an end date.")
            st.stop()
        subject = Subject(SubjectKind(kind.lower()), household_size)
        st.caption(f"Selected period: {period.days} days")

        quantities = {}
        tabs = st.tabs([c.label for c in CATEGORIES])
        for tab, category in zip(tabs, CATEGORIES):
            with tab:
                values = {}
                for f in category.fields:
                    help_text = None
                    if f.factor_key:
                        help_text = f"{DEFAULT_FACTORS[f.factor_key]} kg CO₂ per {f.unit}"
                    values[f.key] = st.number_input(
                        f"{f.label} ({f.unit})", min_value=0.0, value=0.0,
                        key=f"{category.name}.{f.key}", help=help_text)
                quantities[category.name] = values

        activity = ActivityInput.from_mapping(quantities)
        result = compute(activity, period, subject)

        st.subheader("Results")
        cols = st.columns(len(RESULT_KEYS))
        for col, key in zip(cols, RESULT_KEYS):
            col.metric(CATEGORY_LABELS[key], f"{result.category(key):.2f} kg")
        if subject.kind is SubjectKind.FAMILY:
            st.write(f"**Total Family Emissions:** {result.total:.2f} kg CO₂ over {result.days} days")
            people = "person" if subject.divisor == 1 else "people"
            st.write(f"**Per Person Emissions:** {result.per_person:.2f} kg CO₂ "
                     f"(for {subject.divisor} {people})")
        else:
            st.write(f"**Total:** {result.total:.2f} kg CO₂ over {result.days} days")

        st.subheader("Suggestions")
        for suggestion in reduction_suggestions(result):
            st.write(f"- {suggestion}")

        if st.button("Save Calculation"):
            try:
                create_calculation(db, identity.user_id, period, subject, activity, result)
            except InvalidCalculation as e:
                st.warning(str(e))
            except SQLAlchemyError:
                st.error("Failed to save calculation. Please try again.")
            else:
                st.success("Calculation saved! View it on your dashboard.")

    elif menu == "Dashboard":
        st.header(f"Welcome back, {identity.name}!")
        st.write("Here's your carbon footprint overview and environmental impact summary.")
        try:
            records = load_records()
        except SQLAlchemyError:
            logger.exception("Failed to fetch calculations")
            st.error("Failed to load calculations. Please try again later.")
            st.stop()
        summary = aggregate(records)

        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Current Emissions", f"{summary.latest_emission:.1f} kg", trend_label(summary),
                  delta_color="inverse" if summary.trend_delta is not None else "off")
        c2.metric("Monthly Average", f"{summary.monthly_average:.1f} kg")
        c3.metric("Per Person", f"{summary.per_person_emission:.1f} kg", summary.rating or "No data",
                  delta_color="off")
        c4.metric("Trees Equivalent", f"{summary.trees_equivalent} trees")
        st.caption("Trees needed to offset the latest calculation (21 kg per tree)")

        if not records:
            st.info("No calculation data available yet. Use the Calculator to create your first one.")
            st.stop()

        col1, col2 = st.columns(2)
        with col1:
            st.plotly_chart(history_bar(records), use_container_width=True)
        with col2:
            st.plotly_chart(category_pie(summary), use_container_width=True)
            for key in SHARE_CATEGORIES:
                st.write(f"**{CATEGORY_LABELS[key]}:** {summary.category_shares[key]:.1f}%")

        st.pyplot(plot_gauge(summary.per_person_emission))

        st.subheader("Emissions History")
        for point in history(records):
            left, mid, right = st.columns([2, 2, 1])
            left.write(f"**{point['label']}**")
            mid.write(f"{point['total']:.1f} kg")
            if right.button("Delete", key=f"delete-{point['id']}"):
                try:
                    deleted = delete_calculation(db, point["id"], identity.user_id)
                except SQLAlchemyError:
                    st.error("Failed to delete calculation")
                else:
                    if deleted:
                        st.rerun()
                    st.error("Calculation not found")

        actions = recommended_actions(summary)
        if actions:
            st.subheader("Recommended Actions")
            for col, (title, detail) in zip(st.columns(len(actions)), actions):
                col.success(f"**{title}**\n\n{detail}")

    elif menu == "Eco Assistant":
        st.header("Eco Assistant")
        if "chat_messages" not in st.session_state:
            st.session_state.chat_messages = []
        try:
            assistant = EcoAssistant.from_settings(settings)
        except AssistantError as e:
            logger.warning("Assistant disabled: %s", e)
            assistant = None

        with st.expander("Eco-friendly tips", expanded=True):
            tips = DEFAULT_TIPS
            if assistant and st.button("Get personalised tips"):
                try:
                    tips = assistant.tips(aggregate(load_records()))
                except AssistantError:
                    st.warning(FALLBACK_REPLY)
            for tip in tips:
                st.write(f"- {tip}")

        for message in st.session_state.chat_messages:
            with st.chat_message(message["role"]):
                st.write(message["content"])

        user_message = st.chat_input("Ask how to reduce your footprint")
        if user_message and user_message.strip():
            st.session_state.chat_messages.append({"role": "user", "content": user_message})
            with st.chat_message("user"):
                st.write(user_message)
            with st.chat_message("assistant"):
                answer = FALLBACK_REPLY
                if assistant is not None:
                    with st.spinner("Thinking..."):
                        try:
                            answer = assistant.reply(user_message)
                        except AssistantError:
                            answer = FALLBACK_REPLY
                st.write(answer)
            st.session_state.chat_messages.append({"role": "assistant", "content": answer})

    elif menu == "Download":
        st.header("Download Reports")
        try:
            records = load_records()
        except SQLAlchemyError:
            logger.exception("Failed to fetch calculations")
            st.error("Failed to load calculations. Please try again later.")
            st.stop()
        csv = records_frame(records).to_csv(index=False).encode('utf-8')
        st.download_button("📥 Download CSV", data=csv, file_name="calculations.csv", mime="text/csv")
        if records:
            summary = aggregate(records)
            st.download_button("📥 Download All Charts and Data (ZIP)",
                               data=build_report_zip(records, summary),
                               file_name="reports.zip", mime="application/zip")
        else:
            st.info("No calculation data to download.")

    elif menu == "About":
        st.header("About")
        st.write("Estimates are normalised to a 30-day month and use these emission factors "
                 "(kg CO₂e per unit). Recycling is recorded but not counted as an emission source.")
        st.table({"Factor": list(DEFAULT_FACTORS), "kg CO₂e / unit": list(DEFAULT_FACTORS.values())})

finally:
    db.close()
