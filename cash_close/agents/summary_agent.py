"""
Closing Summary Agent

Produces the WhatsApp-ready text of a day's closing.

CRITICAL BOUNDARIES:
- The LLM only FORMATS the record it is given
- Every figure in the prompt comes from the stored record
- The final balance is always the gross sales total
- Any failure (no API key, network error, empty answer) falls back to a
  deterministic template built from the same record

The LLM is a FORMATTER, not a source of numbers.
"""

from decimal import Decimal
from typing import Optional

import google.generativeai as genai
from pydantic import BaseModel

from cash_close.config import GeminiSettings, get_settings
from cash_close.models.record import (
    DailyRecord,
    SalesChannel,
    StaffMember,
    format_display_date,
    format_money,
)


NOT_IDENTIFIED = "Não identificado"
NOT_INFORMED = "Não informado"
UNKNOWN_STAFF = "Desconhecido"


class SummaryResult(BaseModel):
    """Generated text and how it was produced."""

    text: str
    used_ai: bool
    error_message: Optional[str] = None


def _closer_name(record: DailyRecord, staff_by_id: dict[str, StaffMember]) -> str:
    if not record.closed_by_staff_id:
        return NOT_INFORMED
    member = staff_by_id.get(record.closed_by_staff_id)
    return member.name if member else NOT_IDENTIFIED


def _rider_figures(record: DailyRecord) -> tuple[int, Decimal]:
    if record.rider_ledger is None:
        return 0, Decimal("0.00")
    return record.rider_ledger.count, record.rider_ledger.total_cost


def build_static_summary(
    record: DailyRecord,
    staff: list[StaffMember],
    currency: str = "R$",
) -> str:
    """
    Deterministic summary of a closing, used whenever the LLM is unavailable.

    The final balance is the gross sales total; rider costs and staff
    payments are informational.
    """
    staff_by_id = {member.id: member for member in staff}

    def money(amount: Decimal) -> str:
        return format_money(amount, currency)

    lines = [
        f"📊 *Fechamento de Caixa - {format_display_date(record.date)}*",
        f"👤 *Responsável:* {_closer_name(record, staff_by_id)}",
        "",
        f"💰 *VENDAS TOTAIS: {money(record.sales.total)}*",
    ]
    for channel in SalesChannel:
        lines.append(f"🔸 *{channel.label}:* {money(record.sales.amount_for(channel))}")
    lines.append("")

    ride_count, ride_cost = _rider_figures(record)
    if ride_cost > 0:
        lines.append(f"🏍️ *MOTOBOY IFOOD (INFO): {money(ride_cost)}*")
        lines.append(f"▪️ {ride_count} entregas realizadas.")
        lines.append("")

    lines.append(f"⏳ *VALORES A PAGAR (EQUIPE): {money(record.total_staff_payments)}*")
    if record.payments:
        for payment in record.payments:
            member = staff_by_id.get(payment.staff_id)
            name = member.name if member else UNKNOWN_STAFF
            deliveries = f" [{payment.delivery_count} entregas]" if payment.delivery_count else ""
            pix = f" (Pix: {member.pix_key})" if member and member.pix_key else ""
            lines.append(f"▪️ {name}{deliveries}{pix}: {money(payment.amount)}")
    else:
        lines.append("▪️ Nenhum valor de equipe lançado.")
    lines.append("")

    if record.total_pending > 0:
        lines.append(f"⚠️ *PENDÊNCIAS (A PAGAR): {money(record.total_pending)}*")
        for item in record.pending_payables:
            ref = f" [Ref: {format_display_date(item.reference_date)}]" if item.reference_date else ""
            lines.append(f"▪️ {item.name}{ref}: {money(item.amount)}")
        lines.append("")

    if record.total_debts > 0:
        lines.append(f"📒 *FIADO (A RECEBER): {money(record.total_debts)}*")
        for debt in record.debts:
            lines.append(f"▪️ {debt.name}: {money(debt.amount)}")
        lines.append("")

    lines.append(f"✅ *SALDO FINAL EM CAIXA: {money(record.sales.total)}*")
    lines.append("_(Total bruto das vendas do dia)_")

    if record.notes:
        lines.append("")
        lines.append(f"📝 *Observações:* {record.notes}")

    return "\n".join(lines)


class SummaryAgent:
    """
    Gemini-backed summary writer.

    RESPONSIBILITIES:
    - Describe the closing per sales channel
    - Separate PENDÊNCIAS (owed by the business) from FIADO (owed to it)

    BOUNDARIES:
    - NEVER computes or alters figures
    - NEVER raises; the static template is the floor
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        business_name: Optional[str] = None,
        currency_symbol: Optional[str] = None,
    ):
        app_settings = get_settings().app
        self._settings = settings or get_settings().gemini
        self._business_name = business_name or app_settings.business_name
        self._currency = currency_symbol or app_settings.currency_symbol
        self._model = None
        if self._settings.api_key:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
            system_instruction=self._system_instruction(),
        )

    @property
    def is_ai_enabled(self) -> bool:
        return self._model is not None

    def _system_instruction(self) -> str:
        return (
            f"Você é um assistente financeiro do '{self._business_name}'. "
            "Gere resumos para WhatsApp claros e profissionais. "
            "Você DEVE mostrar o faturamento detalhado por aplicativo (iFood, KCMS e SGV). "
            "Use 'PENDÊNCIAS' para o que o restaurante deve pagar (equipe/fornecedores "
            "de outros dias) e 'FIADO' para o que tem a receber de clientes. "
            "O saldo final deve ser exatamente o total das vendas brutas."
        )

    def build_prompt(self, record: DailyRecord, staff: list[StaffMember]) -> str:
        """Render the record into the prompt; every number comes from `record`."""
        staff_by_id = {member.id: member for member in staff}

        def money(amount: Decimal) -> str:
            return format_money(amount, self._currency)

        payment_lines = []
        for payment in record.payments:
            member = staff_by_id.get(payment.staff_id)
            name = member.name if member else UNKNOWN_STAFF
            deliveries = f" | {payment.delivery_count} entregas" if payment.delivery_count else ""
            pix = f" | Pix: {member.pix_key}" if member and member.pix_key else ""
            payment_lines.append(f"- {name}{deliveries}{pix}: {money(payment.amount)}")

        pending_lines = [
            f"- {item.name} (Ref: {item.reference_date or '-'}): {money(item.amount)}"
            for item in record.pending_payables
        ]
        debt_lines = [f"- {debt.name}: {money(debt.amount)}" for debt in record.debts]
        channel_lines = [
            f"- {channel.label}: {money(record.sales.amount_for(channel))}"
            for channel in SalesChannel
        ]
        ride_count, ride_cost = _rider_figures(record)

        return "\n".join([
            "Gere um relatório de fechamento detalhando os aplicativos:",
            f"DATA: {format_display_date(record.date)}",
            f"RESPONSÁVEL: {_closer_name(record, staff_by_id)}",
            "",
            "DETALHAMENTO DE VENDAS:",
            *channel_lines,
            f"TOTAL VENDAS: {money(record.sales.total)}",
            "",
            "INFORMAÇÕES DE MOTOBOYS IFOOD:",
            f"- Corridas ({ride_count} entregas): {money(ride_cost)}",
            "",
            "VALORES A PAGAR (EQUIPE HOJE):",
            *(payment_lines or ["Nenhum"]),
            f"Total Equipe: {money(record.total_staff_payments)}",
            "",
            "PENDÊNCIAS (DÍVIDAS DE OUTROS DIAS/FORNECEDORES):",
            *(pending_lines or ["Nenhuma"]),
            "",
            "FIADO (A RECEBER):",
            *(debt_lines or ["Nenhum"]),
            "",
            f"SALDO FINAL EM CAIXA: {money(record.sales.total)}",
            "",
            f"OBSERVAÇÕES: {record.notes or 'Nenhuma'}",
            "",
            "Formate com emojis e liste as vendas de iFood, KCMS e SGV separadamente.",
        ])

    async def summarize(
        self,
        record: DailyRecord,
        staff: list[StaffMember],
    ) -> SummaryResult:
        """Generate the summary and report whether the LLM produced it."""
        static = build_static_summary(record, staff, self._currency)

        if self._model is None:
            return SummaryResult(text=static, used_ai=False, error_message="No Gemini API key configured")

        try:
            response = await self._model.generate_content_async(self.build_prompt(record, staff))
            text = (response.text or "").strip()
        except Exception as e:
            return SummaryResult(text=static, used_ai=False, error_message=str(e) or type(e).__name__)

        if not text:
            return SummaryResult(text=static, used_ai=False, error_message="Empty response from Gemini")
        return SummaryResult(text=text, used_ai=True)

    async def generate_summary(
        self,
        record: DailyRecord,
        staff: list[StaffMember],
    ) -> str:
        """Summary text for a record; never raises."""
        result = await self.summarize(record, staff)
        return result.text
