"""Tests for closing summaries (static template and Gemini agent)."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from cash_close.agents import SummaryAgent, build_static_summary
from cash_close.config import GeminiSettings
from cash_close.models.record import DebtItem, PendingItem, RiderLedger


@pytest.fixture
def full_record(prior_record):
    return prior_record.model_copy(update={
        "pending_payables": [PendingItem(name="B (Ref. 09/01/2024)", amount=30, reference_date="2024-01-09")],
        "debts": [DebtItem(name="João", amount=12)],
        "rider_ledger": RiderLedger(rides=["8", "7.5"]),
        "notes": "Troco conferido",
    })


class TestStaticSummary:
    """Tests for the deterministic template."""

    def test_header_and_closer(self, prior_record, staff):
        """Test the title line and the responsible staff member."""
        text = build_static_summary(prior_record, staff)
        lines = text.split("\n")
        assert lines[0] == "📊 *Fechamento de Caixa - 10/01/2024*"
        assert lines[1] == "👤 *Responsável:* Maria"

    def test_sales_per_channel(self, prior_record, staff):
        """Test that every channel is listed with the gross total."""
        text = build_static_summary(prior_record, staff)
        assert "💰 *VENDAS TOTAIS: R$ 175.00*" in text
        assert "🔸 *iFood:* R$ 100.00" in text
        assert "🔸 *KCMS:* R$ 50.00" in text
        assert "🔸 *SGV:* R$ 25.00" in text

    def test_final_balance_is_gross_sales(self, full_record, staff):
        """Test that rider costs and payments do not reduce the balance."""
        text = build_static_summary(full_record, staff)
        assert "✅ *SALDO FINAL EM CAIXA: R$ 175.00*" in text

    def test_staff_lines(self, prior_record, staff):
        """Test deliveries and Pix key on payment lines."""
        text = build_static_summary(prior_record, staff)
        assert "▪️ A [4 entregas] (Pix: 11999990000): R$ 50.00" in text
        assert "▪️ B: R$ 30.00" in text

    def test_optional_sections(self, full_record, staff):
        """Test pendencies, fiado, rider ledger and notes sections."""
        text = build_static_summary(full_record, staff)
        assert "⚠️ *PENDÊNCIAS (A PAGAR): R$ 30.00*" in text
        assert "▪️ B (Ref. 09/01/2024) [Ref: 09/01/2024]: R$ 30.00" in text
        assert "📒 *FIADO (A RECEBER): R$ 12.00*" in text
        assert "🏍️ *MOTOBOY IFOOD (INFO): R$ 15.50*" in text
        assert "▪️ 2 entregas realizadas." in text
        assert text.endswith("📝 *Observações:* Troco conferido")

    def test_sections_omitted_when_empty(self, prior_record, staff):
        """Test that empty sections are left out."""
        text = build_static_summary(prior_record, staff)
        assert "PENDÊNCIAS" not in text
        assert "FIADO" not in text
        assert "MOTOBOY" not in text
        assert "Observações" not in text

    def test_no_payments_and_unknown_closer(self, prior_record):
        """Test placeholders with an empty directory."""
        record = prior_record.model_copy(update={"payments": []})
        text = build_static_summary(record, [])
        assert "👤 *Responsável:* Não identificado" in text
        assert "▪️ Nenhum valor de equipe lançado." in text

    def test_currency_symbol(self, prior_record, staff):
        """Test a configurable currency prefix."""
        text = build_static_summary(prior_record, staff, currency="$")
        assert "VENDAS TOTAIS: $ 175.00" in text


class TestSummaryAgent:
    """Tests for the Gemini-backed agent with mocked genai."""

    @pytest.mark.asyncio
    async def test_no_api_key_uses_template(self, prior_record, staff):
        """Test that no key means no model and the static text."""
        agent = SummaryAgent(settings=GeminiSettings(api_key=None))
        result = await agent.summarize(prior_record, staff)
        assert agent.is_ai_enabled is False
        assert result.used_ai is False
        assert result.text == build_static_summary(prior_record, staff)

    @pytest.mark.asyncio
    async def test_uses_model_text(self, prior_record, staff):
        """Test that the model's answer is returned when present."""
        with patch("cash_close.agents.summary_agent.genai") as mock_genai:
            model = MagicMock()
            model.generate_content_async = AsyncMock(return_value=MagicMock(text="  Resumo IA  "))
            mock_genai.GenerativeModel.return_value = model

            agent = SummaryAgent(settings=GeminiSettings(api_key="test-key"))
            result = await agent.summarize(prior_record, staff)

        mock_genai.configure.assert_called_once_with(api_key="test-key")
        assert result.used_ai is True
        assert result.text == "Resumo IA"

    @pytest.mark.asyncio
    async def test_model_error_falls_back(self, prior_record, staff):
        """Test that an API failure returns the static summary."""
        with patch("cash_close.agents.summary_agent.genai") as mock_genai:
            model = MagicMock()
            model.generate_content_async = AsyncMock(side_effect=RuntimeError("503"))
            mock_genai.GenerativeModel.return_value = model

            agent = SummaryAgent(settings=GeminiSettings(api_key="test-key"))
            result = await agent.summarize(prior_record, staff)

        assert result.used_ai is False
        assert result.error_message == "503"
        assert result.text == build_static_summary(prior_record, staff)

    @pytest.mark.asyncio
    async def test_empty_answer_falls_back(self, prior_record, staff):
        """Test that an empty model answer returns the static summary."""
        with patch("cash_close.agents.summary_agent.genai") as mock_genai:
            model = MagicMock()
            model.generate_content_async = AsyncMock(return_value=MagicMock(text=""))
            mock_genai.GenerativeModel.return_value = model

            agent = SummaryAgent(settings=GeminiSettings(api_key="test-key"))
            text = await agent.generate_summary(prior_record, staff)

        assert text == build_static_summary(prior_record, staff)

    def test_prompt_carries_record_figures(self, full_record, staff):
        """Test that the prompt lists every channel and the gross balance."""
        agent = SummaryAgent(settings=GeminiSettings(api_key=None))
        prompt = agent.build_prompt(full_record, staff)
        assert "- iFood: R$ 100.00" in prompt
        assert "- KCMS: R$ 50.00" in prompt
        assert "- SGV: R$ 25.00" in prompt
        assert "SALDO FINAL EM CAIXA: R$ 175.00" in prompt
        assert "- Corridas (2 entregas): R$ 15.50" in prompt
        assert "OBSERVAÇÕES: Troco conferido" in prompt
