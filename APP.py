import asyncio
import streamlit as st
import pandas as pd
import matplotlib.pyplot as plt

from insights.config import (
    PREDICTION_PROFILES, DEFAULT_PROFILE, REFRESH_INTERVAL_SECONDS, FAST_REFRESH_INTERVAL_SECONDS,
    SUCCESS_PROBABILITY, PILOT_SUCCESS_PROBABILITY,
)
from insights.session import DashboardSession
from insights.validation import filter_unusual
from insights.notifications import (
    DEFAULT_TEMPLATE, PLACEHOLDERS, NotificationSimulator, TemplateError,
    validate_template, render_message,
)
from insights.export import DATASETS, FORMATS, export_datasets, export_summary
from insights import metrics

st.set_page_config(page_title="Delivery Insights", layout="wide")


# ====== SESIÓN ======
if "session" not in st.session_state:
    st.session_state.session = DashboardSession.create()
    st.session_state.delivery = {}
    st.session_state.last_summary = None

session: DashboardSession = st.session_state.session

# refresh automático (se evalúa en cada rerun)
fast = st.session_state.get("fast_refresh", False)
interval = FAST_REFRESH_INTERVAL_SECONDS if fast else REFRESH_INTERVAL_SECONDS
next_in = "5 minutes" if fast else "24 hours"
if session.is_due(interval):
    session.refresh_now()

restaurants = session.restaurants
historical = session.historical
predictions = session.predictions
validation = session.validation
rest_map = restaurants.set_index("id", drop=False)


# ====== HEADER ======
h1, h2 = st.columns([4, 1])
with h1:
    st.title(" Delivery Insights ")
    st.caption(f"Last updated: {session.last_updated:%H:%M:%S} · next refresh in {next_in} · {len(restaurants)} restaurants")
with h2:
    if st.button("🔄 Refresh", disabled=session.is_refreshing):
        with st.spinner("Refreshing predictions..."):
            asyncio.run(session.refresh())
        st.rerun()


# ====== EXPORT (sidebar) ======
with st.sidebar:
    st.checkbox("Fast refresh (every 5 minutes)", key="fast_refresh")
    st.divider()
    st.subheader("⬇️ Export data")
    sel = {
        "predictions": st.checkbox(f"ML predictions ({len(predictions)} records)", value=True),
        "restaurants": st.checkbox(f"Restaurant details ({len(restaurants)} records)", value=True),
        "historical": st.checkbox("Historical data (last 1000 records)", value=False),
        "flagged": st.checkbox("Flagged restaurants only", value=False),
    }
    fmt = st.radio("Format", FORMATS, format_func=str.upper, horizontal=True)
    chosen = [name for name in DATASETS if sel[name]]

    if st.button("Export", disabled=not chosen):
        try:
            st.session_state.export_files = export_datasets(chosen, fmt, restaurants, historical, predictions)
            st.success(export_summary(st.session_state.export_files))
        except ValueError as e:
            st.error(str(e))

    for f in st.session_state.get("export_files", []):
        st.download_button(f"⬇️ {f.filename}", data=f.content.encode("utf-8"),
                           file_name=f.filename, mime=f.mime, key=f"dl_{f.filename}")


# ====== MÉTRICAS ======
m = metrics.overview_metrics(restaurants, predictions)
c1, c2, c3, c4, c5 = st.columns(5)
c1.metric("Restaurants", m["total_restaurants"])
c2.metric("Predicted orders", f"{m['total_predicted_orders']:,}")
c3.metric("Expected revenue", f"GHS {m['total_expected_revenue']:,}")
c4.metric("Potential revenue", f"GHS {m['total_potential_revenue']:,}")
c5.metric("High risk", m["high_risk_count"])

st.divider()

tab_pred, tab_val, tab_sms = st.tabs([" ML Predictions", " Validation", " SMS Deployment"])


# ====== TAB PREDICCIONES ======
with tab_pred:
    st.subheader("📈 Predictions for tomorrow")

    names = sorted(PREDICTION_PROFILES)
    profile = st.selectbox("Prediction profile", names,
                           index=names.index(session.profile) if session.profile in names else names.index(DEFAULT_PROFILE))
    if profile != session.profile:
        session.set_profile(profile)
        st.rerun()

    trend = metrics.trend_data(predictions)
    fig1 = metrics.trend_figure(trend)
    fig2 = metrics.revenue_figure(trend)
    fig3 = metrics.hourly_figure(metrics.hourly_profile(historical))

    r1c1, r1c2, r1c3 = st.columns(3)
    with r1c1:
        st.caption("Orders (confidence band)")
        st.pyplot(fig1, use_container_width=True)
    with r1c2:
        st.caption("Expected vs potential revenue")
        st.pyplot(fig2, use_container_width=True)
    with r1c3:
        st.caption("Historical orders by hour")
        st.pyplot(fig3, use_container_width=True)
    plt.close(fig1); plt.close(fig2); plt.close(fig3)

    view = predictions.merge(restaurants[["id", "name", "zone"]], left_on="restaurant_id", right_on="id", how="left")
    st.dataframe(view[["name", "zone", "predicted_orders", "confidence_lower", "confidence_upper",
                       "expected_revenue", "potential_revenue", "risk_level", "order_variance",
                       "revenue_variance"]], use_container_width=True)


# ====== TAB VALIDACIÓN ======
with tab_val:
    st.subheader("🛡️ Prediction validation")

    t1, t2 = st.columns(2)
    with t1:
        order_thr = st.slider("Order variance threshold", 0, 50, int(validation.order_threshold), step=1)
        st.caption("Predictions further than this from the historical average need approval")
    with t2:
        rev_thr = st.slider("Revenue variance threshold (GHS)", 0, 1000, int(validation.revenue_threshold), step=10)
        st.caption("Expected revenue further than this from the average needs approval")

    if (order_thr, rev_thr) != (validation.order_threshold, validation.revenue_threshold):
        validation.set_thresholds(order_thr, rev_thr)

    v1, v2, v3 = st.columns(3)
    v1.metric("Normal (auto-approved)", len(validation.normal))
    v2.metric("Unusual", len(validation.unusual))
    v3.metric("Validated", len(validation.validated))

    g1, g2 = st.columns(2)
    with g1:
        fig4 = metrics.comparison_figure(metrics.comparison_data(predictions, restaurants))
        st.pyplot(fig4, use_container_width=True)
        plt.close(fig4)
    with g2:
        fig5 = metrics.variance_figure(predictions, order_thr, rev_thr)
        st.pyplot(fig5, use_container_width=True)
        plt.close(fig5)

    st.write("### Unusual predictions")
    search = st.text_input("Search restaurants", placeholder="Name or zone...")
    flagged = filter_unusual(predictions, restaurants, validation.unusual, search)

    b1, b2 = st.columns(2)
    if b1.button("Select all"):
        validation.select_all(flagged["restaurant_id"])
        st.rerun()
    if b2.button("Only normal"):
        validation.select_only_normal()
        st.rerun()

    if flagged.empty:
        st.success("✅ No unusual predictions for these thresholds.")
    else:
        for _, p in flagged.head(100).iterrows():
            rid = p["restaurant_id"]
            label = (f'{p["name"]} ({p["zone"]}) · {rid} | orders {int(p["predicted_orders"])} '
                     f'({int(p["order_variance"]):+d}) · GHS {int(p["expected_revenue"])} '
                     f'({int(p["revenue_variance"]):+d}) · risk {p["risk_level"]}')
            checked = st.checkbox(label, value=validation.is_validated(rid))
            if checked != validation.is_validated(rid):
                validation.toggle(rid)
                st.rerun()
        if len(flagged) > 100:
            st.caption(f"Showing 100 of {len(flagged)}. Refine the search to see more.")


# ====== TAB SMS ======
with tab_sms:
    st.subheader("💬 SMS deployment")

    template = st.text_area("SMS template", value=DEFAULT_TEMPLATE, height=140)
    st.caption("Available variables: " + ", ".join("{" + p + "}" for p in PLACEHOLDERS))
    problems = validate_template(template)
    if problems:
        for msg in problems:
            st.error(msg)
    else:
        st.success("Valid template")

    pilot = st.toggle("Pilot gateway (95% success)", value=False)
    targets = sorted(validation.validated, key=lambda rid: int(rid.split("_")[1]))
    st.write(f"**{len(targets)} validated restaurants**")

    pred_map = predictions.set_index("restaurant_id", drop=False)
    if targets and not problems:
        with st.expander("Preview messages"):
            for rid in targets[:3]:
                st.write(f"**{rest_map.loc[rid, 'name']}** ({rest_map.loc[rid, 'contact']})")
                st.write(render_message(template, rest_map.loc[rid], pred_map.loc[rid]))

    status_box = st.empty()

    def show_status(outcomes):
        counts = metrics.status_counts(outcomes)
        table = pd.DataFrame({
            "restaurant": [rest_map.loc[rid, "name"] for rid in outcomes],
            "contact": [rest_map.loc[rid, "contact"] for rid in outcomes],
            "status": list(outcomes.values()),
        })
        with status_box.container():
            st.progress((counts["delivered"] + counts["failed"]) / max(1, len(outcomes)))
            st.caption(f'{counts["sent"]} sent · {counts["delivered"]} delivered · {counts["failed"]} failed')
            st.dataframe(table, use_container_width=True)

    if st.button("📤 Deploy SMS", disabled=bool(problems) or not targets):
        sim = NotificationSimulator(
            rng=session.rng,
            success_probability=PILOT_SUCCESS_PROBABILITY if pilot else SUCCESS_PROBABILITY,
        )
        try:
            summary = asyncio.run(sim.deploy(restaurants, predictions, template, targets, on_update=show_status))
            st.session_state.delivery = dict(summary.outcomes)
            st.session_state.last_summary = summary.description
        except TemplateError as e:
            st.error(str(e))

    if st.session_state.delivery:
        show_status(st.session_state.delivery)
    if st.session_state.last_summary:
        st.success("SMS deployment complete: " + st.session_state.last_summary)
