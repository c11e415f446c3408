"""
Streamlit Frontend for TRIAD3

The screens people use every day to keep their finances, assets and
succession documents in one place.

DESIGN PRINCIPLES:
1. Nothing behind the paywall renders before entitlement is known
2. Money fields re-encode on every edit (cents-first, R$ 0,00)
3. A form is saved once per click; errors are shown, never retried
4. Derived numbers (gains, progress, durations) are computed, not stored

The subscription guard re-checks every minute, and right away after
sign-in, sign-out or a successful checkout. A failed check keeps the
last known answer and shows a warning instead of locking the user out.
"""

import asyncio
import threading
from datetime import date, timezone
from decimal import Decimal
from typing import Any, Optional

import streamlit as st
import structlog

from src.audit import create_correlation_id
from src.config import get_settings, validate_all_settings
from src.forms import (
    BENEFICIARY_FORM,
    FORMS,
    WILL_FORM,
    FieldKind,
    FieldSpec,
    FormDefinition,
    Ok,
    RemoteFailed,
    ValidationFailed,
)
from src.forms.fields import coerce_date
from src.metrics import (
    elapsed_duration,
    format_duration,
    format_percentage,
    future_value,
    gain_loss,
    progress_percentage,
    suggested_monthly_contribution,
    years_to_target,
)
from src.models.records import (
    BudgetLine,
    Debt,
    FinancialGoal,
    FixedAsset,
    Investment,
    UserRecord,
)
from src.models.subscription import EntitlementState, trial_days_remaining
from src.money import decode, encode, format_currency
from src.orchestrator import AppComponents, create_app_components
from src.services.auth import AuthError
from src.services.billing import BillingError
from src.services.storage import StorageError

logger = structlog.get_logger(__name__)


# Page configuration
st.set_page_config(
    page_title="TRIAD3",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


# Sidebar entries: label -> form key (None for the special pages)
RECORD_PAGES = {
    "🏦 Contas Bancárias": "conta_bancaria",
    "📒 Livro Caixa": "transacao",
    "📈 Aplicações": "aplicacao",
    "🏠 Bens Imobilizados": "bem_imobilizado",
    "🧓 Previdência": "plano_previdencia",
    "💳 Dívidas": "divida",
    "🎯 Metas": "meta_financeira",
    "📊 Orçamento": "orcamento",
    "🧾 Declarações IR": "declaracao_irpf",
    "💵 Rendimentos IR": "rendimento_irpf",
    "💞 Contrato de Namoro": "contrato_namoro",
}


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """
    One event loop for the whole process, running in its own thread.

    The loop holds no user state. Refreshes scheduled by auth events
    outlive a single script run, so they need a loop that does too.
    """
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, name="triad3-loop", daemon=True)
    thread.start()
    return loop


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    return asyncio.run_coroutine_threadsafe(coro, get_event_loop()).result()


def get_components() -> AppComponents:
    """
    Get or create this browser session's components.

    Auth, the access token, the subscription snapshot and the audit
    history belong to one user, so they live in session_state and
    never in st.cache_resource. The periodic refresh is the
    subscription_watch fragment, which stops with the tab.
    """
    components = st.session_state.get("components")
    if components is None:
        app_url = get_settings().app.app_url
        components = create_app_components(use_backend=True, redirect_to=app_url)
        st.session_state["components"] = components
        logger.info("session_components_created", offline=components.offline)
    return components


# =============================================================================
# FIELD WIDGETS
# =============================================================================

def _widget_key(form: FormDefinition, spec: FieldSpec, prefix: str = "") -> str:
    return f"{prefix}{form.key}__{spec.name}"


def _reencode(key: str) -> None:
    st.session_state[key] = encode(st.session_state.get(key, ""))


def _pending_key(form: FormDefinition, prefix: str) -> str:
    return f"pending__{prefix}{form.key}"


def load_form_state(form: FormDefinition, values: dict[str, Any], prefix: str = "") -> None:
    """
    Queue raw values for the widgets of a form.

    Widget state cannot change once the widget is drawn, so the values
    are applied at the start of the next run.
    """
    st.session_state[_pending_key(form, prefix)] = values


def clear_form_state(form: FormDefinition, prefix: str = "") -> None:
    load_form_state(form, form.blank(), prefix)


def _apply_pending_state(form: FormDefinition, prefix: str) -> None:
    values = st.session_state.pop(_pending_key(form, prefix), None)
    if values is None:
        return
    for spec in form.fields:
        st.session_state[_widget_key(form, spec, prefix)] = values.get(spec.name)


def flash(message: str, warnings: tuple = ()) -> None:
    """Show a message on the next run, after st.rerun()."""
    st.session_state["flash"] = (message, list(warnings))


def show_flash() -> None:
    message = st.session_state.pop("flash", None)
    if message is None:
        return
    text, warnings = message
    st.success(text)
    for warning in warnings:
        st.warning(f"⚠️ {warning}")


def render_field(form: FormDefinition, spec: FieldSpec, prefix: str = "") -> Any:
    """Render one field and return its raw value."""
    key = _widget_key(form, spec, prefix)
    label = f"{spec.label} *" if spec.required else spec.label

    if key not in st.session_state:
        st.session_state[key] = form.blank()[spec.name]

    if spec.kind == FieldKind.CURRENCY:
        return st.text_input(
            label,
            key=key,
            placeholder="R$ 0,00",
            on_change=_reencode,
            args=(key,),
        )
    if spec.kind == FieldKind.DATE:
        return st.date_input(label, key=key, format="DD/MM/YYYY")
    if spec.kind == FieldKind.CHOICE:
        if st.session_state[key] not in spec.choices:
            st.session_state[key] = None
        return st.selectbox(label, options=list(spec.choices), key=key, placeholder="Selecione")
    if spec.kind == FieldKind.BOOLEAN:
        return st.checkbox(label, key=key)
    if spec.kind == FieldKind.TEXTAREA:
        return st.text_area(label, key=key)
    return st.text_input(label, key=key, placeholder=spec.placeholder or "")


def render_fields(form: FormDefinition, prefix: str = "") -> dict[str, Any]:
    """Render every field of a form in two columns."""
    _apply_pending_state(form, prefix)
    raw: dict[str, Any] = {}
    columns = st.columns(2)
    for index, spec in enumerate(form.fields):
        with columns[index % 2]:
            raw[spec.name] = render_field(form, spec, prefix)
    return raw


def show_result(result, success_message: str) -> bool:
    """Render a form result. Returns True on success."""
    if isinstance(result, Ok):
        st.success(success_message)
        for warning in result.warnings:
            st.warning(f"⚠️ {warning}")
        return True
    if isinstance(result, ValidationFailed):
        st.markdown("""
        <div class="warning-box">
            <h4>⚠️ Verifique os campos</h4>
        </div>
        """, unsafe_allow_html=True)
        for message in result.messages:
            st.markdown(f"- {message}")
        return False
    if isinstance(result, RemoteFailed):
        st.error(f"❌ {result.message}")
    return False


# =============================================================================
# DERIVED METRICS PER RECORD
# =============================================================================

def record_metrics(record: UserRecord, today: Optional[date] = None) -> list[tuple[str, str]]:
    """Computed numbers shown next to a record."""
    if isinstance(record, Investment):
        result = gain_loss(record.valor_atual, record.valor_aplicado)
        sign = "+" if result.is_gain else "-"
        return [
            ("Ganho/Perda", f"{sign}{format_currency(abs(result.amount))}"),
            ("Rentabilidade", format_percentage(result.percentage)),
        ]
    if isinstance(record, FixedAsset):
        result = gain_loss(record.valor_atual, record.valor_aquisicao)
        return [
            ("Valorização", format_percentage(result.percentage)),
            ("Tempo de posse", format_duration(elapsed_duration(record.data_aquisicao, today))),
        ]
    if isinstance(record, Debt):
        return [
            ("Parcelas pagas", format_percentage(
                progress_percentage(record.parcelas_pagas, record.numero_parcelas)
            )),
            ("Quitado", format_percentage(progress_percentage(
                record.valor_original - record.saldo_devedor, record.valor_original
            ))),
        ]
    if isinstance(record, FinancialGoal):
        suggestion = suggested_monthly_contribution(
            record.valor_objetivo, record.valor_atual, record.data_objetivo, today
        )
        return [
            ("Progresso", format_percentage(progress_percentage(record.valor_atual, record.valor_objetivo))),
            ("Sugestão mensal", format_currency(suggestion) if suggestion is not None else "—"),
        ]
    if isinstance(record, BudgetLine):
        return [
            ("Gasto do planejado", format_percentage(
                progress_percentage(record.valor_gasto, record.valor_planejado)
            )),
        ]
    return []


def _display_value(spec: FieldSpec, value: Any) -> str:
    if value is None or value == "":
        return "—"
    if spec.kind == FieldKind.CURRENCY:
        return format_currency(value)
    if spec.kind == FieldKind.DATE:
        return value.strftime("%d/%m/%Y")
    if spec.kind == FieldKind.BOOLEAN:
        return "Sim" if value else "Não"
    return str(value)


# =============================================================================
# AUTH AND SUBSCRIPTION GUARD
# =============================================================================

def render_auth_page(components: AppComponents):
    """Sign-in and sign-up tabs."""
    st.title("💰 TRIAD3")
    st.markdown("Gestão patrimonial, sucessória e financeira em um só lugar.")

    sign_in_tab, sign_up_tab = st.tabs(["Entrar", "Criar conta"])

    with sign_in_tab:
        email = st.text_input("Email", key="signin_email")
        password = st.text_input("Senha", type="password", key="signin_password")
        if st.button("Entrar", type="primary", key="signin_button"):
            with st.spinner("Entrando..."):
                result = run_async(components.auth_flow.sign_in(email, password))
            if show_result(result, "✅ Bem-vindo de volta!"):
                run_async(components.subscription.refresh())
                st.rerun()

    with sign_up_tab:
        full_name = st.text_input("Nome completo", key="signup_name")
        email = st.text_input("Email", key="signup_email")
        password = st.text_input("Senha", type="password", key="signup_password")
        if st.button("Criar conta", type="primary", key="signup_button"):
            with st.spinner("Criando sua conta..."):
                result = run_async(components.auth_flow.sign_up(email, password, full_name))
            if show_result(result, "✅ Conta criada! Verifique seu email para confirmar o cadastro."):
                run_async(components.subscription.refresh())
                if components.auth.session is not None:
                    st.rerun()


def render_paywall(components: AppComponents):
    snapshot = components.subscription.snapshot
    st.title("🔒 Assinatura necessária")

    if snapshot.state == EntitlementState.ERROR:
        st.error(f"Não foi possível verificar sua assinatura: {snapshot.error}")
        if st.button("Tentar novamente"):
            run_async(components.subscription.refresh())
            st.rerun()
        return

    st.markdown("""
    <div class="info-box">
        <h4>Comece seu teste gratuito</h4>
        <p>Assine a TRIAD3 para acessar todos os módulos.</p>
    </div>
    """, unsafe_allow_html=True)

    if st.button("💳 Assinar agora", type="primary"):
        try:
            url = run_async(components.subscription.create_checkout())
        except (BillingError, AuthError) as e:
            st.error(f"❌ {e}")
        else:
            st.link_button("Ir para o pagamento", url)


def render_subscription_banner(components: AppComponents):
    snapshot = components.subscription.snapshot
    if snapshot.is_stale:
        st.warning(
            "⚠️ Não conseguimos confirmar sua assinatura agora. "
            "Mostrando o último status conhecido."
        )
    if snapshot.is_trialing:
        days = trial_days_remaining(snapshot.trial_end)
        if days is not None:
            st.info(f"🎁 Período de teste: {days} dia(s) restante(s).")


def entitlement_guard(components: AppComponents) -> bool:
    """
    Refresh the snapshot when due and decide what to render.

    Returns True when the app itself may render.
    """
    cache = components.subscription

    params = dict(st.query_params)
    if run_async(cache.handle_checkout_return(params)):
        st.query_params.clear()
        st.success("✅ Pagamento confirmado! Obrigado por assinar.")

    snapshot = run_async(cache.refresh_if_stale())

    if snapshot.state == EntitlementState.LOADING:
        with st.spinner("Verificando sua assinatura..."):
            snapshot = run_async(cache.refresh())

    if snapshot.state == EntitlementState.UNAUTHENTICATED:
        render_auth_page(components)
        return False
    if not snapshot.is_entitled:
        render_paywall(components)
        return False
    return True


def main():
    """Main application entry point."""
    components = get_components()
    cache = components.subscription

    if not entitlement_guard(components):
        return

    @st.fragment(run_every=cache.refresh_seconds)
    def subscription_watch():
        previous = cache.snapshot.state
        snapshot = run_async(cache.refresh_if_stale())
        if snapshot.state != previous and not snapshot.is_entitled:
            st.rerun(scope="app")
        render_subscription_banner(components)

    # Sidebar navigation
    st.sidebar.title("💰 TRIAD3")
    user = components.auth.current_user
    if user:
        st.sidebar.caption(user.user_metadata.get("nome_completo") or user.email)
    if components.offline:
        st.sidebar.warning("Modo offline: contas e dados ficam só nesta aba e somem ao recarregar a página.")
    st.sidebar.markdown("---")

    pages = (
        ["🏠 Painel"]
        + list(RECORD_PAGES)
        + ["📜 Testamento", "🚀 Plano do Milhão", "⚙️ Configurações"]
    )
    page = st.sidebar.radio("Navegar para:", pages, index=0)

    st.sidebar.markdown("---")
    if st.sidebar.button("Sair"):
        run_async(components.auth_flow.sign_out())
        run_async(cache.refresh())
        st.rerun()

    subscription_watch()

    # Route to appropriate page
    if page == "🏠 Painel":
        render_dashboard_page(components)
    elif page in RECORD_PAGES:
        render_record_page(components, FORMS[RECORD_PAGES[page]])
    elif page == "📜 Testamento":
        render_will_page(components)
    elif page == "🚀 Plano do Milhão":
        render_million_plan_page()
    elif page == "⚙️ Configurações":
        render_settings_page(components)


# =============================================================================
# PAGES
# =============================================================================

def render_dashboard_page(components: AppComponents):
    """Totals across the user's records."""
    st.title("🏠 Painel")
    records = components.records

    try:
        investments = run_async(records.list_records(Investment))
        assets = run_async(records.list_records(FixedAsset))
        debts = run_async(records.list_records(Debt))
        goals = run_async(records.list_records(FinancialGoal))
    except (AuthError, StorageError) as e:
        st.error(f"Erro ao carregar seus dados: {e}")
        return

    invested = sum((i.valor_aplicado for i in investments), Decimal("0"))
    current = sum((i.valor_atual for i in investments), Decimal("0"))
    patrimony = current + sum((a.valor_atual for a in assets), Decimal("0"))
    owed = sum((d.saldo_devedor for d in debts), Decimal("0"))
    result = gain_loss(current, invested)

    col1, col2, col3 = st.columns(3)
    col1.metric("Patrimônio", format_currency(patrimony))
    col2.metric(
        "Aplicações",
        format_currency(current),
        delta=format_percentage(result.percentage),
    )
    col3.metric("Dívidas", format_currency(owed))

    if goals:
        st.markdown("### 🎯 Metas")
        for goal in goals:
            progress = progress_percentage(goal.valor_atual, goal.valor_objetivo)
            st.markdown(f"**{goal.titulo}**: {format_percentage(progress)}")
            st.progress(min(max((progress or 0) / 100, 0.0), 1.0))


def render_record_page(components: AppComponents, form: FormDefinition):
    """Create, list, edit and delete records of one form."""
    st.title(form.title)
    show_flash()
    records = components.records
    editing_key = f"editing__{form.key}"
    editing: Optional[UserRecord] = st.session_state.get(editing_key)

    st.markdown(f"### {'✏️ Editar' if editing else '➕ Novo registro'}")
    raw = render_fields(form)

    if form is FORMS["meta_financeira"]:
        render_goal_suggestion(form, raw)

    col1, col2 = st.columns(2)
    with col1:
        if st.button("💾 Salvar", type="primary", key=f"save__{form.key}"):
            with st.spinner("Salvando..."):
                result = run_async(records.save(
                    form, raw, existing=editing, correlation_id=create_correlation_id()
                ))
            if show_result(result, "✅ Registro salvo com sucesso!"):
                st.session_state.pop(editing_key, None)
                clear_form_state(form)
                flash("✅ Registro salvo com sucesso!", result.warnings)
                st.rerun()
    with col2:
        if editing and st.button("Cancelar edição", key=f"cancel__{form.key}"):
            st.session_state.pop(editing_key, None)
            clear_form_state(form)
            st.rerun()

    st.markdown("---")
    st.markdown("### 📋 Seus registros")

    try:
        items = run_async(records.list_records(form.model))
    except AuthError as e:
        st.error(f"❌ {e}")
        return

    if not items:
        st.info("Nenhum registro ainda. Use o formulário acima para adicionar o primeiro.")
        return

    for record in items:
        render_record_item(components, form, record)


def render_record_item(components: AppComponents, form: FormDefinition, record: UserRecord):
    title = getattr(record, form.fields[0].name, None) or form.title
    with st.expander(str(title)):
        for spec in form.fields:
            st.markdown(f"**{spec.label}:** {_display_value(spec, getattr(record, spec.name, None))}")

        metrics = record_metrics(record)
        if metrics:
            columns = st.columns(len(metrics))
            for column, (label, value) in zip(columns, metrics):
                column.metric(label, value)

        col1, col2 = st.columns(2)
        with col1:
            if st.button("✏️ Editar", key=f"edit__{form.key}__{record.id}"):
                st.session_state[f"editing__{form.key}"] = record
                load_form_state(form, form.prefill(record))
                st.rerun()
        with col2:
            if st.button("🗑️ Excluir", key=f"delete__{form.key}__{record.id}"):
                result = run_async(components.records.delete(form.model, record.id))
                if show_result(result, "Registro excluído."):
                    st.rerun()


def render_goal_suggestion(form: FormDefinition, raw: dict[str, Any]):
    """Fill the monthly contribution a goal needs from the values typed so far."""
    if not st.button("🧮 Calcular contribuição mensal sugerida", key="goal_suggestion"):
        return

    target_date = coerce_date(raw.get("data_objetivo"))
    target = decode(raw.get("valor_objetivo"))
    if target_date is None or target <= 0:
        st.warning("Informe o valor da meta e o prazo para calcular a sugestão.")
        return

    suggestion = suggested_monthly_contribution(target, decode(raw.get("valor_atual")), target_date)
    if suggestion is None:
        st.info("A meta já foi atingida ou o prazo é menor que um mês.")
    else:
        st.markdown(f"""
        <div class="success-box">
            <h4>Contribuição sugerida</h4>
            <p class="big-number">{format_currency(suggestion)}</p>
            <p>por mês até {target_date.strftime('%d/%m/%Y')}</p>
        </div>
        """, unsafe_allow_html=True)


def render_will_page(components: AppComponents):
    """A will and the beneficiaries that share the estate."""
    st.title("📜 Testamento")
    show_flash()
    records = components.records
    editing_key = f"editing__{WILL_FORM.key}"
    editing: Optional[UserRecord] = st.session_state.get(editing_key)

    st.markdown(f"### {'✏️ Editar testamento' if editing else '➕ Novo testamento'}")
    raw_will = render_fields(WILL_FORM)

    if editing:
        # Heirs are kept as saved; only the will's own fields change
        col1, col2 = st.columns(2)
        with col1:
            if st.button("💾 Salvar alterações", type="primary", key="save_will_edit"):
                with st.spinner("Salvando..."):
                    result = run_async(records.save(
                        WILL_FORM, raw_will, existing=editing, correlation_id=create_correlation_id()
                    ))
                if show_result(result, "✅ Testamento atualizado!"):
                    st.session_state.pop(editing_key, None)
                    clear_form_state(WILL_FORM)
                    flash("✅ Testamento atualizado!", result.warnings)
                    st.rerun()
        with col2:
            if st.button("Cancelar edição", key="cancel_will_edit"):
                st.session_state.pop(editing_key, None)
                clear_form_state(WILL_FORM)
                st.rerun()
    else:
        st.markdown("### 👥 Beneficiários")
        count = st.number_input("Quantidade de beneficiários", min_value=1, max_value=20, value=1, step=1)
        beneficiaries_raw = []
        for index in range(int(count)):
            st.markdown(f"**Beneficiário {index + 1}**")
            beneficiaries_raw.append(render_fields(BENEFICIARY_FORM, prefix=f"b{index}_"))

        if st.button("💾 Salvar testamento", type="primary"):
            with st.spinner("Salvando..."):
                result = run_async(records.save_will(raw_will, beneficiaries_raw))
            if show_result(result, "✅ Testamento salvo com sucesso!"):
                clear_form_state(WILL_FORM)
                for index in range(int(count)):
                    clear_form_state(BENEFICIARY_FORM, prefix=f"b{index}_")
                flash("✅ Testamento salvo com sucesso!", result.warnings)
                st.rerun()

    st.markdown("---")
    st.markdown("### 📋 Seus testamentos")
    try:
        wills = run_async(records.list_records(WILL_FORM.model))
    except AuthError as e:
        st.error(f"❌ {e}")
        return

    for will in wills:
        with st.expander(f"{will.titulo} ({will.status})"):
            st.markdown(f"**Tipo:** {will.tipo}")
            st.markdown(f"**Elaborado em:** {will.data_elaboracao.strftime('%d/%m/%Y')}")
            for beneficiary in run_async(records.list_beneficiaries(will.id)):
                share = format_percentage(
                    float(beneficiary.percentual_heranca)
                    if beneficiary.percentual_heranca is not None else None
                )
                st.markdown(f"- {beneficiary.nome} ({beneficiary.parentesco or '—'}): {share}")
            col1, col2 = st.columns(2)
            with col1:
                if st.button("✏️ Editar", key=f"edit_will__{will.id}"):
                    st.session_state[editing_key] = will
                    load_form_state(WILL_FORM, WILL_FORM.prefill(will))
                    st.rerun()
            with col2:
                if st.button("🗑️ Excluir", key=f"delete_will__{will.id}"):
                    result = run_async(records.delete(WILL_FORM.model, will.id))
                    if show_result(result, "Testamento excluído."):
                        if editing is not None and editing.id == will.id:
                            st.session_state.pop(editing_key, None)
                            clear_form_state(WILL_FORM)
                        st.rerun()


def render_million_plan_page():
    """How long until the first million."""
    st.title("🚀 Plano do Milhão")

    col1, col2 = st.columns(2)
    with col1:
        initial = st.text_input("Valor inicial", key="plan_initial", on_change=_reencode, args=("plan_initial",))
        monthly = st.text_input("Aporte mensal", key="plan_monthly", on_change=_reencode, args=("plan_monthly",))
    with col2:
        rate = st.number_input("Rentabilidade anual (%)", min_value=0.0, max_value=100.0, value=10.0, step=0.5)
        years = st.slider("Horizonte (anos)", min_value=1, max_value=50, value=20)

    initial_amount = decode(initial)
    monthly_amount = decode(monthly)
    annual_rate = Decimal(str(rate))

    balance = future_value(initial_amount, monthly_amount, annual_rate, years)
    needed = years_to_target(initial_amount, monthly_amount, annual_rate)

    st.markdown(f"""
    <div class="info-box">
        <h4>Em {years} anos</h4>
        <p class="big-number">{format_currency(balance)}</p>
    </div>
    """, unsafe_allow_html=True)

    if needed is None:
        st.warning("Com esses valores o primeiro milhão não chega em 50 anos.")
    else:
        st.success(f"🎉 Você chega a {format_currency(1_000_000)} em {needed:.1f} anos.".replace(".", ",", 1))


def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.title("⚙️ Configurações")

    st.markdown("### Assinatura")
    snapshot = components.subscription.snapshot
    st.markdown(f"**Status:** {snapshot.status or snapshot.state.value}")
    if snapshot.subscription_end:
        st.markdown(f"**Renova em:** {snapshot.subscription_end.strftime('%d/%m/%Y')}")
    if snapshot.checked_at:
        checked = snapshot.checked_at.astimezone(timezone.utc).strftime("%d/%m/%Y %H:%M")
        st.caption(f"Verificado em {checked} UTC")

    if st.button("🧾 Gerenciar assinatura"):
        try:
            url = run_async(components.subscription.open_customer_portal())
        except (BillingError, AuthError) as e:
            st.error(f"❌ {e}")
        else:
            st.link_button("Abrir portal do cliente", url)

    st.markdown("---")
    st.markdown("### Connection Status")

    status = validate_all_settings()
    services = [
        ("Supabase (Auth, Storage, Billing)", "supabase"),
        ("Resend (Email)", "resend"),
        ("Email hook", "email_hook"),
        ("App", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configurado")
        else:
            error = status.get(f"{key}_error", "Não configurado")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Atividade recente")
    history = components.audit_logger.history[-20:]
    if not history:
        st.info("Nenhuma atividade registrada nesta sessão.")
    for event in reversed(history):
        when = event.timestamp.astimezone(timezone.utc).strftime("%d/%m %H:%M:%S")
        st.markdown(f"`{when}` **{event.event_type.value}** - {event.description}")


if __name__ == "__main__":
    main()
