"""
Record Models for TRIAD3

One flat model per table in the hosted database. Field names are the
column names, because the table schema is an external contract.

All records belong to the authenticated user. Money fields are canonical
Decimals with two fractional digits; the forms decode display strings
into these before the model is built.

DESIGN DECISION: Cross-field rules that make a record impossible
(paid installments above the total, an end date before a start date)
live here as model validators. Softer checks belong to the form
validators, which report them to the user.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, ClassVar, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

Money = Annotated[Decimal, Field(ge=0, decimal_places=2)]
SignedMoney = Annotated[Decimal, Field(decimal_places=2)]
Rate = Annotated[Decimal, Field(ge=0, le=1000)]

CPF_PATTERN = re.compile(r"^\d{3}\.?\d{3}\.?\d{3}-?\d{2}$")


def validate_cpf_format(value: str) -> str:
    """Accept 000.000.000-00 or 00000000000."""
    if not CPF_PATTERN.match(value):
        raise ValueError("Formato de CPF inválido")
    return value


# =============================================================================
# BASE
# =============================================================================

class UserRecord(BaseModel):
    """
    Common columns of every user-owned table.

    id and timestamps are assigned by the database, so they are empty
    until the record has been inserted.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    table_name: ClassVar[str] = ""
    # Column that scopes rows to their owner; None when ownership is indirect
    owner_column: ClassVar[Optional[str]] = "user_id"
    # Indirect ownership: the column pointing at the owning row, and its table
    parent_column: ClassVar[Optional[str]] = None
    parent_table: ClassVar[Optional[str]] = None

    id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_row(self) -> dict:
        """
        Serialize for the record store.

        Server-assigned columns are dropped while empty.
        """
        row = self.model_dump(mode="json")
        for column in ("id", "created_at", "updated_at"):
            if row.get(column) is None:
                row.pop(column, None)
        return row


# =============================================================================
# ACCOUNTS AND CASH BOOK
# =============================================================================

class BankAccount(UserRecord):
    table_name: ClassVar[str] = "contas_bancarias"

    banco: str = Field(..., min_length=1, max_length=100)
    agencia: Optional[str] = Field(default=None, max_length=20)
    numero_conta: str = Field(..., min_length=1, max_length=30)
    tipo_conta: str = Field(..., min_length=1, max_length=50)
    saldo_atual: SignedMoney = Decimal("0.00")
    limite_credito: Optional[Money] = None
    ativo: bool = True


class Transaction(UserRecord):
    """A cash-book entry (income or expense)."""
    table_name: ClassVar[str] = "transacoes"

    data: date
    descricao: str = Field(..., min_length=1, max_length=200)
    categoria: str = Field(..., min_length=1, max_length=50)
    tipo: str = Field(..., pattern="^(receita|despesa)$")
    valor: Money
    conta: str = Field(..., min_length=1, max_length=100)
    observacoes: Optional[str] = Field(default=None, max_length=1000)


# =============================================================================
# INVESTMENTS AND ASSETS
# =============================================================================

class Investment(UserRecord):
    table_name: ClassVar[str] = "aplicacoes"

    nome: str = Field(..., min_length=1, max_length=100)
    tipo: str = Field(..., min_length=1, max_length=50)
    instituicao: str = Field(..., min_length=1, max_length=100)
    valor_aplicado: Money
    valor_atual: Money
    data_aplicacao: date
    data_vencimento: Optional[date] = None
    liquidez: Optional[str] = None
    rentabilidade_tipo: Optional[str] = None
    taxa_rentabilidade: Optional[Rate] = None

    @model_validator(mode='after')
    def validate_dates(self) -> 'Investment':
        if self.data_vencimento and self.data_vencimento < self.data_aplicacao:
            raise ValueError("Data de vencimento não pode ser anterior à aplicação")
        return self


class FixedAsset(UserRecord):
    """Real estate, vehicles and other owned goods."""
    table_name: ClassVar[str] = "bens_imobilizados"

    nome: str = Field(..., min_length=1, max_length=100)
    categoria: str = Field(..., min_length=1, max_length=50)
    data_aquisicao: date
    valor_aquisicao: Money
    valor_atual: Money
    descricao: Optional[str] = Field(default=None, max_length=1000)
    localizacao: Optional[str] = Field(default=None, max_length=200)
    status: str = "Ativo"


class PensionPlan(UserRecord):
    table_name: ClassVar[str] = "planos_previdencia"

    nome: str = Field(..., min_length=1, max_length=100)
    tipo: str = Field(..., min_length=1, max_length=50)
    instituicao: str = Field(..., min_length=1, max_length=100)
    contribuicao_mensal: Money
    valor_acumulado: Money = Decimal("0.00")
    data_inicio: date
    idade_resgate: Optional[int] = Field(default=None, ge=18, le=120)
    taxa_administracao: Optional[Rate] = None
    rentabilidade_acumulada: Optional[Decimal] = None
    ativo: bool = True


# =============================================================================
# DEBTS, GOALS AND BUDGETS
# =============================================================================

class Debt(UserRecord):
    table_name: ClassVar[str] = "dividas"

    nome: str = Field(..., min_length=1, max_length=100)
    tipo: str = Field(..., min_length=1, max_length=50)
    credor: str = Field(..., min_length=1, max_length=100)
    valor_original: Money
    saldo_devedor: Money
    valor_parcela: Money
    numero_parcelas: int = Field(..., ge=1)
    parcelas_pagas: int = Field(default=0, ge=0)
    taxa_juros: Optional[Rate] = None
    data_contratacao: date
    data_vencimento: Optional[date] = None
    status: str = "Ativo"

    @model_validator(mode='after')
    def validate_installments(self) -> 'Debt':
        if self.parcelas_pagas > self.numero_parcelas:
            raise ValueError("Parcelas pagas não podem exceder o total de parcelas")
        return self


class FinancialGoal(UserRecord):
    table_name: ClassVar[str] = "metas_financeiras"

    titulo: str = Field(..., min_length=1, max_length=100)
    valor_objetivo: Money
    valor_atual: Money = Decimal("0.00")
    data_inicio: date
    data_objetivo: date
    categoria: Optional[str] = None
    descricao: Optional[str] = Field(default=None, max_length=1000)
    status: str = "Em andamento"

    @model_validator(mode='after')
    def validate_dates(self) -> 'FinancialGoal':
        if self.data_objetivo < self.data_inicio:
            raise ValueError("Prazo não pode ser anterior ao início da meta")
        return self


class BudgetLine(UserRecord):
    """One category line of a budget for a reference month."""
    table_name: ClassVar[str] = "orcamentos"

    categoria: str = Field(..., min_length=1, max_length=50)
    tipo: str = Field(..., pattern="^(Mensal|Trimestral|Semestral|Anual)$")
    mes_referencia: date
    valor_planejado: Money
    valor_gasto: Money = Decimal("0.00")


# =============================================================================
# INCOME TAX
# =============================================================================

class TaxDeclaration(UserRecord):
    table_name: ClassVar[str] = "declaracoes_irpf"

    ano: int = Field(..., ge=2000, le=2100)
    status: str = "Em preenchimento"
    valor_pagar: Optional[Money] = None
    valor_restituir: Optional[Money] = None
    prazo_limite: Optional[date] = None
    recibo: Optional[str] = None


class IncomeRecord(UserRecord):
    table_name: ClassVar[str] = "rendimentos_irpf"

    ano: int = Field(..., ge=2000, le=2100)
    tipo: str = Field(..., min_length=1, max_length=50)
    fonte_pagadora: str = Field(..., min_length=1, max_length=200)
    cnpj: Optional[str] = Field(default=None, max_length=18)
    valor: Money
    irrf: Optional[Money] = None
    contribuicao_previdenciaria: Optional[Money] = None
    decimo_terceiro: Optional[Money] = None
    declaracao_id: Optional[UUID] = None


# =============================================================================
# LEGAL DOCUMENTS
# =============================================================================

class Will(UserRecord):
    table_name: ClassVar[str] = "testamentos"

    titulo: str = Field(..., min_length=1, max_length=200)
    tipo: str = Field(..., min_length=1, max_length=50)
    data_elaboracao: date
    cartorio: Optional[str] = None
    estado_civil: Optional[str] = None
    regime_bens: Optional[str] = None
    nome_conjuge: Optional[str] = None
    livro_numero: Optional[str] = None
    folha_numero: Optional[str] = None
    observacoes: Optional[str] = Field(default=None, max_length=2000)
    status: str = "Rascunho"


class Beneficiary(UserRecord):
    """Heir listed in a will. Owned through the will, not the user."""
    table_name: ClassVar[str] = "beneficiarios_testamento"
    owner_column: ClassVar[Optional[str]] = None
    parent_column: ClassVar[Optional[str]] = "testamento_id"
    parent_table: ClassVar[Optional[str]] = "testamentos"

    testamento_id: Optional[UUID] = None
    nome: str = Field(..., min_length=1, max_length=200)
    cpf: str
    parentesco: Optional[str] = None
    percentual_heranca: Optional[Decimal] = Field(default=None, ge=0, le=100)
    observacoes: Optional[str] = None

    @field_validator('cpf')
    @classmethod
    def check_cpf(cls, v: str) -> str:
        return validate_cpf_format(v)

    def to_row(self) -> dict:
        row = super().to_row()
        row.pop("user_id", None)
        row.pop("updated_at", None)
        return row


class CohabitationContract(UserRecord):
    """Dating/cohabitation contract between two parties."""
    table_name: ClassVar[str] = "contratos_namoro"

    titulo: str = Field(..., min_length=1, max_length=200)
    data_inicio: date
    regime_bens: str = Field(..., min_length=1)

    parte_1_nome: str = Field(..., min_length=1, max_length=200)
    parte_1_cpf: str
    parte_1_endereco: Optional[str] = None
    deveres_parte_1: Optional[str] = None
    direitos_parte_1: Optional[str] = None

    parte_2_nome: str = Field(..., min_length=1, max_length=200)
    parte_2_cpf: str
    parte_2_endereco: Optional[str] = None
    deveres_parte_2: Optional[str] = None
    direitos_parte_2: Optional[str] = None

    clausulas_adicionais: Optional[str] = None
    testemunha_1_nome: Optional[str] = None
    testemunha_1_cpf: Optional[str] = None
    testemunha_2_nome: Optional[str] = None
    testemunha_2_cpf: Optional[str] = None

    @field_validator('parte_1_cpf', 'parte_2_cpf')
    @classmethod
    def check_party_cpf(cls, v: str) -> str:
        return validate_cpf_format(v)

    @field_validator('testemunha_1_cpf', 'testemunha_2_cpf')
    @classmethod
    def check_witness_cpf(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        return validate_cpf_format(v)


RECORD_TYPES: dict[str, type[UserRecord]] = {
    model.table_name: model
    for model in (
        BankAccount,
        Transaction,
        Investment,
        FixedAsset,
        PensionPlan,
        Debt,
        FinancialGoal,
        BudgetLine,
        TaxDeclaration,
        IncomeRecord,
        Will,
        Beneficiary,
        CohabitationContract,
    )
}
