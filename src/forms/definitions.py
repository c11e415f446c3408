"""
Record Form Definitions

One FormDefinition per record form. Labels are what the user sees,
names are the table columns.
"""

from decimal import Decimal
from typing import Any

from src.forms.fields import FieldKind, FieldSpec, FormDefinition
from src.models.records import (
    BankAccount,
    Beneficiary,
    BudgetLine,
    CohabitationContract,
    Debt,
    FinancialGoal,
    FixedAsset,
    IncomeRecord,
    Investment,
    PensionPlan,
    TaxDeclaration,
    Transaction,
    Will,
)
from src.models.validation import ValidationIssue

F = FieldKind

ZERO = Decimal("0")
HUNDRED = Decimal("100")


# =============================================================================
# CROSS-FIELD CHECKS
# =============================================================================

def _positive(field: str, message: str):
    def check(values: dict[str, Any]) -> list[ValidationIssue]:
        amount = values.get(field)
        if amount is not None and amount <= ZERO:
            return [ValidationIssue(field=field, issue_type="invalid_value", message=message)]
        return []
    return check


def _not_before(later: str, earlier: str, message: str):
    def check(values: dict[str, Any]) -> list[ValidationIssue]:
        end, start = values.get(later), values.get(earlier)
        if end and start and end < start:
            return [ValidationIssue(field=later, issue_type="inconsistent", message=message)]
        return []
    return check


def _goal_not_exceeded(values: dict[str, Any]) -> list[ValidationIssue]:
    target, current = values.get("valor_objetivo"), values.get("valor_atual")
    if target is not None and current is not None and current > target:
        return [ValidationIssue(
            field="valor_atual",
            issue_type="inconsistent",
            message="O valor atual não pode ser maior que a meta.",
        )]
    return []


def _installments_consistent(values: dict[str, Any]) -> list[ValidationIssue]:
    total, paid = values.get("numero_parcelas"), values.get("parcelas_pagas")
    if total is not None and paid is not None and paid > total:
        return [ValidationIssue(
            field="parcelas_pagas",
            issue_type="inconsistent",
            message="Parcelas pagas não podem exceder o total de parcelas.",
        )]
    return []


def _balance_within_original(values: dict[str, Any]) -> list[ValidationIssue]:
    original, balance = values.get("valor_original"), values.get("saldo_devedor")
    if original is not None and balance is not None and balance > original:
        return [ValidationIssue(
            field="saldo_devedor",
            issue_type="suspicious_value",
            message="O saldo devedor está acima do valor original da dívida.",
            severity="warning",
            suggested_fix="Confira se juros foram incluídos de propósito",
        )]
    return []


def _pay_or_refund(values: dict[str, Any]) -> list[ValidationIssue]:
    pay, refund = values.get("valor_pagar"), values.get("valor_restituir")
    if pay and refund and pay > ZERO and refund > ZERO:
        return [ValidationIssue(
            field="valor_restituir",
            issue_type="inconsistent",
            message="Uma declaração não costuma ter imposto a pagar e a restituir.",
            severity="warning",
        )]
    return []


def _distinct_parties(values: dict[str, Any]) -> list[ValidationIssue]:
    digits = [
        "".join(c for c in (values.get(name) or "") if c.isdigit())
        for name in ("parte_1_cpf", "parte_2_cpf")
    ]
    if digits[0] and digits[0] == digits[1]:
        return [ValidationIssue(
            field="parte_2_cpf",
            issue_type="inconsistent",
            message="As partes do contrato devem ter CPFs diferentes.",
        )]
    return []


def beneficiary_share_issues(shares: list[Decimal]) -> list[ValidationIssue]:
    """The shares of all heirs of a will cannot add up to more than 100%."""
    total = sum(shares, ZERO)
    if total > HUNDRED:
        return [ValidationIssue(
            field="percentual_heranca",
            issue_type="out_of_range",
            message=f"A soma dos percentuais ({total}%) passa de 100%.",
        )]
    return []


# =============================================================================
# FORMS
# =============================================================================

BANK_ACCOUNT_FORM = FormDefinition(
    key="conta_bancaria",
    title="Conta Bancária",
    model=BankAccount,
    fields=(
        FieldSpec("banco", "Banco", required=True),
        FieldSpec("agencia", "Agência", required=True),
        FieldSpec("numero_conta", "Número da conta", required=True),
        FieldSpec(
            "tipo_conta", "Tipo de conta", F.CHOICE, required=True,
            choices=("Conta Corrente", "Conta Poupança", "Conta Salário", "Conta Investimento"),
        ),
        FieldSpec("saldo_atual", "Saldo atual", F.CURRENCY),
        FieldSpec("limite_credito", "Limite de crédito", F.CURRENCY),
        FieldSpec("ativo", "Conta ativa", F.BOOLEAN),
    ),
)

TRANSACTION_FORM = FormDefinition(
    key="transacao",
    title="Lançamento no Livro Caixa",
    model=Transaction,
    fields=(
        FieldSpec("data", "Data", F.DATE, required=True),
        FieldSpec("descricao", "Descrição", required=True),
        FieldSpec("categoria", "Categoria", required=True),
        FieldSpec("tipo", "Tipo", F.CHOICE, required=True, choices=("receita", "despesa")),
        FieldSpec("valor", "Valor", F.CURRENCY, required=True),
        FieldSpec("conta", "Conta", required=True),
        FieldSpec("observacoes", "Observações", F.TEXTAREA),
    ),
    checks=(_positive("valor", "O valor deve ser maior que zero."),),
)

INVESTMENT_FORM = FormDefinition(
    key="aplicacao",
    title="Aplicação",
    model=Investment,
    fields=(
        FieldSpec("nome", "Nome / Ticker", required=True),
        FieldSpec(
            "tipo", "Categoria", F.CHOICE, required=True,
            choices=(
                "Ação", "FII", "ETF", "Renda Fixa", "Criptomoeda",
                "Tesouro Direto", "CDB", "LCI/LCA",
            ),
        ),
        FieldSpec("instituicao", "Instituição", required=True),
        FieldSpec("valor_aplicado", "Valor aplicado", F.CURRENCY, required=True),
        FieldSpec("valor_atual", "Valor atual", F.CURRENCY, required=True),
        FieldSpec("data_aplicacao", "Data da aplicação", F.DATE, required=True),
        FieldSpec("data_vencimento", "Vencimento", F.DATE),
        FieldSpec("liquidez", "Liquidez"),
        FieldSpec("rentabilidade_tipo", "Tipo de rentabilidade"),
        FieldSpec("taxa_rentabilidade", "Taxa (% a.a.)", F.DECIMAL, min_value=ZERO),
    ),
    checks=(
        _positive("valor_aplicado", "O valor aplicado deve ser maior que zero."),
        _not_before(
            "data_vencimento", "data_aplicacao",
            "O vencimento não pode ser anterior à data da aplicação.",
        ),
    ),
)

FIXED_ASSET_FORM = FormDefinition(
    key="bem_imobilizado",
    title="Bem Imobilizado",
    model=FixedAsset,
    fields=(
        FieldSpec("nome", "Nome", required=True),
        FieldSpec(
            "categoria", "Categoria", F.CHOICE, required=True,
            choices=("Imóvel", "Veículo", "Equipamento", "Joias", "Obras de Arte", "Outros"),
        ),
        FieldSpec("data_aquisicao", "Data de aquisição", F.DATE, required=True),
        FieldSpec("valor_aquisicao", "Valor de aquisição", F.CURRENCY, required=True),
        FieldSpec("valor_atual", "Valor atual", F.CURRENCY, required=True),
        FieldSpec("localizacao", "Localização"),
        FieldSpec("descricao", "Descrição", F.TEXTAREA),
        FieldSpec("status", "Status", F.CHOICE, choices=("Ativo", "Vendido", "Baixado")),
    ),
)

PENSION_PLAN_FORM = FormDefinition(
    key="plano_previdencia",
    title="Plano de Previdência",
    model=PensionPlan,
    fields=(
        FieldSpec("nome", "Nome do plano", required=True),
        FieldSpec(
            "tipo", "Tipo", F.CHOICE, required=True,
            choices=("PGBL", "VGBL", "FAPI", "Tradicional", "Outros"),
        ),
        FieldSpec("instituicao", "Instituição", required=True),
        FieldSpec("contribuicao_mensal", "Contribuição mensal", F.CURRENCY, required=True),
        FieldSpec("valor_acumulado", "Valor acumulado", F.CURRENCY),
        FieldSpec("data_inicio", "Data de início", F.DATE, required=True),
        FieldSpec(
            "idade_resgate", "Idade de resgate", F.INTEGER,
            min_value=Decimal("18"), max_value=Decimal("120"),
        ),
        FieldSpec("taxa_administracao", "Taxa de administração (%)", F.DECIMAL, min_value=ZERO),
        FieldSpec("ativo", "Plano ativo", F.BOOLEAN),
    ),
)

DEBT_FORM = FormDefinition(
    key="divida",
    title="Dívida",
    model=Debt,
    fields=(
        FieldSpec("nome", "Descrição", required=True),
        FieldSpec(
            "tipo", "Tipo", F.CHOICE, required=True,
            choices=("Imóvel", "Veículo", "Pessoal", "Cartão", "Estudantil", "Empresarial", "Outros"),
        ),
        FieldSpec("credor", "Credor", required=True),
        FieldSpec("valor_original", "Valor original", F.CURRENCY, required=True),
        FieldSpec("saldo_devedor", "Saldo devedor", F.CURRENCY, required=True),
        FieldSpec("valor_parcela", "Valor da parcela", F.CURRENCY, required=True),
        FieldSpec("numero_parcelas", "Número de parcelas", F.INTEGER, required=True, min_value=Decimal("1")),
        FieldSpec("parcelas_pagas", "Parcelas pagas", F.INTEGER, min_value=ZERO),
        FieldSpec("taxa_juros", "Taxa de juros (% a.m.)", F.DECIMAL, min_value=ZERO),
        FieldSpec("data_contratacao", "Data de contratação", F.DATE, required=True),
        FieldSpec("data_vencimento", "Vencimento final", F.DATE),
        FieldSpec("status", "Status", F.CHOICE, choices=("Ativo", "Quitado", "Atrasado")),
    ),
    checks=(
        _installments_consistent,
        _balance_within_original,
        _not_before(
            "data_vencimento", "data_contratacao",
            "O vencimento não pode ser anterior à contratação.",
        ),
    ),
)

GOAL_FORM = FormDefinition(
    key="meta_financeira",
    title="Meta Financeira",
    model=FinancialGoal,
    fields=(
        FieldSpec("titulo", "Nome da meta", required=True),
        FieldSpec("valor_objetivo", "Valor da meta", F.CURRENCY, required=True),
        FieldSpec("valor_atual", "Valor atual", F.CURRENCY),
        FieldSpec("data_inicio", "Início", F.DATE, required=True),
        FieldSpec("data_objetivo", "Prazo", F.DATE, required=True),
        FieldSpec(
            "categoria", "Categoria", F.CHOICE,
            choices=("Reserva de Emergência", "Viagem", "Imóvel", "Veículo", "Educação", "Aposentadoria", "Outros"),
        ),
        FieldSpec("descricao", "Descrição", F.TEXTAREA),
    ),
    checks=(
        _positive("valor_objetivo", "O valor da meta deve ser maior que zero."),
        _goal_not_exceeded,
        _not_before("data_objetivo", "data_inicio", "O prazo não pode ser anterior ao início."),
    ),
)

BUDGET_FORM = FormDefinition(
    key="orcamento",
    title="Orçamento",
    model=BudgetLine,
    fields=(
        FieldSpec("categoria", "Categoria", required=True),
        FieldSpec(
            "tipo", "Período", F.CHOICE, required=True,
            choices=("Mensal", "Trimestral", "Semestral", "Anual"),
        ),
        FieldSpec("mes_referencia", "Mês de referência", F.DATE, required=True),
        FieldSpec("valor_planejado", "Valor planejado", F.CURRENCY, required=True),
        FieldSpec("valor_gasto", "Valor gasto", F.CURRENCY),
    ),
    checks=(_positive("valor_planejado", "O valor planejado deve ser maior que zero."),),
)

TAX_DECLARATION_FORM = FormDefinition(
    key="declaracao_irpf",
    title="Declaração de IR",
    model=TaxDeclaration,
    fields=(
        FieldSpec("ano", "Ano-calendário", F.INTEGER, required=True,
                  min_value=Decimal("2000"), max_value=Decimal("2100")),
        FieldSpec(
            "status", "Status", F.CHOICE,
            choices=("Em preenchimento", "Entregue", "Retificada", "Processada"),
        ),
        FieldSpec("valor_pagar", "Imposto a pagar", F.CURRENCY),
        FieldSpec("valor_restituir", "Imposto a restituir", F.CURRENCY),
        FieldSpec("prazo_limite", "Prazo limite", F.DATE, required=True),
        FieldSpec("recibo", "Número do recibo"),
    ),
    checks=(_pay_or_refund,),
)

INCOME_FORM = FormDefinition(
    key="rendimento_irpf",
    title="Rendimento",
    model=IncomeRecord,
    fields=(
        FieldSpec("ano", "Ano", F.INTEGER, required=True,
                  min_value=Decimal("2000"), max_value=Decimal("2100")),
        FieldSpec(
            "tipo", "Tipo", F.CHOICE, required=True,
            choices=("Salário", "Serviços", "Dividendos", "Aluguéis", "Outros"),
        ),
        FieldSpec("fonte_pagadora", "Fonte pagadora", required=True),
        FieldSpec("cnpj", "CNPJ"),
        FieldSpec("valor", "Valor", F.CURRENCY, required=True),
        FieldSpec("irrf", "IRRF", F.CURRENCY),
        FieldSpec("contribuicao_previdenciaria", "Contribuição previdenciária", F.CURRENCY),
        FieldSpec("decimo_terceiro", "13º salário", F.CURRENCY),
    ),
    checks=(_positive("valor", "O valor do rendimento deve ser maior que zero."),),
)

WILL_FORM = FormDefinition(
    key="testamento",
    title="Testamento",
    model=Will,
    fields=(
        FieldSpec("titulo", "Título", required=True),
        FieldSpec(
            "tipo", "Tipo", F.CHOICE, required=True,
            choices=("Testamento Público", "Testamento Particular", "Testamento Cerrado", "Codicilo"),
        ),
        FieldSpec("data_elaboracao", "Data de elaboração", F.DATE, required=True),
        FieldSpec("cartorio", "Cartório"),
        FieldSpec(
            "estado_civil", "Estado civil", F.CHOICE,
            choices=("Solteiro(a)", "Casado(a)", "União Estável", "Divorciado(a)", "Viúvo(a)"),
        ),
        FieldSpec(
            "regime_bens", "Regime de bens", F.CHOICE,
            choices=(
                "Comunhão Universal de Bens",
                "Comunhão Parcial de Bens",
                "Participação Final nos Aquestos",
                "Separação de Bens (Convencional)",
                "Separação de Bens (Obrigatória/Legal)",
            ),
        ),
        FieldSpec("nome_conjuge", "Nome do cônjuge"),
        FieldSpec("livro_numero", "Livro"),
        FieldSpec("folha_numero", "Folha"),
        FieldSpec("observacoes", "Observações", F.TEXTAREA),
    ),
)

BENEFICIARY_FORM = FormDefinition(
    key="beneficiario",
    title="Beneficiário",
    model=Beneficiary,
    fields=(
        FieldSpec("nome", "Nome do beneficiário", required=True),
        FieldSpec("cpf", "CPF", required=True, placeholder="000.000.000-00"),
        FieldSpec("parentesco", "Parentesco", required=True),
        FieldSpec(
            "percentual_heranca", "Percentual da herança", F.DECIMAL, required=True,
            min_value=ZERO, max_value=HUNDRED,
        ),
        FieldSpec("observacoes", "Bens e observações", F.TEXTAREA),
    ),
)

COHABITATION_FORM = FormDefinition(
    key="contrato_namoro",
    title="Contrato de Namoro",
    model=CohabitationContract,
    fields=(
        FieldSpec("titulo", "Título", required=True),
        FieldSpec("data_inicio", "Início do relacionamento", F.DATE, required=True),
        FieldSpec(
            "regime_bens", "Regime de bens", F.CHOICE, required=True,
            choices=("Separação Total de Bens", "Comunhão Parcial de Bens", "Comunhão Universal de Bens"),
        ),
        FieldSpec("parte_1_nome", "Nome da parte 1", required=True),
        FieldSpec("parte_1_cpf", "CPF da parte 1", required=True, placeholder="000.000.000-00"),
        FieldSpec("parte_1_endereco", "Endereço da parte 1"),
        FieldSpec("deveres_parte_1", "Deveres da parte 1", F.TEXTAREA),
        FieldSpec("direitos_parte_1", "Direitos da parte 1", F.TEXTAREA),
        FieldSpec("parte_2_nome", "Nome da parte 2", required=True),
        FieldSpec("parte_2_cpf", "CPF da parte 2", required=True, placeholder="000.000.000-00"),
        FieldSpec("parte_2_endereco", "Endereço da parte 2"),
        FieldSpec("deveres_parte_2", "Deveres da parte 2", F.TEXTAREA),
        FieldSpec("direitos_parte_2", "Direitos da parte 2", F.TEXTAREA),
        FieldSpec("clausulas_adicionais", "Cláusulas adicionais", F.TEXTAREA),
        FieldSpec("testemunha_1_nome", "Testemunha 1"),
        FieldSpec("testemunha_1_cpf", "CPF da testemunha 1"),
        FieldSpec("testemunha_2_nome", "Testemunha 2"),
        FieldSpec("testemunha_2_cpf", "CPF da testemunha 2"),
    ),
    checks=(_distinct_parties,),
)


FORMS: dict[str, FormDefinition] = {
    form.key: form
    for form in (
        BANK_ACCOUNT_FORM,
        TRANSACTION_FORM,
        INVESTMENT_FORM,
        FIXED_ASSET_FORM,
        PENSION_PLAN_FORM,
        DEBT_FORM,
        GOAL_FORM,
        BUDGET_FORM,
        TAX_DECLARATION_FORM,
        INCOME_FORM,
        WILL_FORM,
        BENEFICIARY_FORM,
        COHABITATION_FORM,
    )
}


def form_for_table(table: str) -> FormDefinition:
    for form in FORMS.values():
        if form.table == table:
            return form
    raise KeyError(table)
