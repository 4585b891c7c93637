"""
AI Financial Analyst

Relays a reduced view of the ledger to Gemini and returns its report.

BOUNDARIES:
- CAN: Summarize cash flow, rank expense categories, recommend savings,
  assess risk, all FROM the transactions it is given
- CANNOT: Change any data; the report is display-only
- NEVER raises to the dashboard: a missing key, a failed call or an empty
  answer all become a placeholder message
"""

import json
from typing import Any, Iterable, Optional

import google.generativeai as genai
import structlog

from cashbox import messages
from cashbox.config import GeminiSettings, get_settings
from cashbox.models.ledger import Transaction
from cashbox.models.results import FailureReason, OperationResult

logger = structlog.get_logger(__name__)


REPORT_PROMPT = """أنت مستشار مالي خبير. قم بتحليل بيانات الصندوق التالية وقدم تقريراً ملخصاً باللغة العربية:
البيانات: {data}

المطلوب:
1. تحليل موجز للتدفقات النقدية.
2. تحديد أكبر بنود المصروفات.
3. تقديم 3 نصائح لتحسين الإدارة المالية وتقليل التكاليف.
4. تقييم سريع للمخاطر (إن وجد).

ملاحظة: العمليات بحالة PENDING أو REJECTED لا تدخل في الرصيد.

اجعل الإجابة بتنسيق Markdown احترافي وواضح."""


def summarize_transactions(transactions: Iterable[Transaction]) -> list[dict[str, Any]]:
    """The fields the model sees: no ids, no descriptions, no user names."""
    return [
        {
            "type": t.type.value,
            "amount": float(t.amount),
            "category": t.category,
            "date": t.date.isoformat(),
            "status": t.status.value,
        }
        for t in transactions
    ]


class FinancialAnalystAgent:
    """
    Gemini-backed ledger report.

    The model is created only when an API key is configured; otherwise
    the agent is disabled and answers with the missing-key message.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Any = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model
        if self._model is None and self._settings.is_configured:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def enabled(self) -> bool:
        return self._model is not None

    def build_prompt(self, transactions: Iterable[Transaction]) -> str:
        data = json.dumps(summarize_transactions(transactions), ensure_ascii=False)
        return REPORT_PROMPT.format(data=data)

    async def analyze(self, transactions: Iterable[Transaction]) -> OperationResult[str]:
        """Request the report. SERVICE_FAILURE carries the placeholder text."""
        if not self.enabled:
            return OperationResult.fail(FailureReason.SERVICE_FAILURE, messages.AI_KEY_MISSING)

        prompt = self.build_prompt(transactions)
        try:
            response = await self._model.generate_content_async(
                prompt,
                request_options={"timeout": self._settings.timeout_seconds},
            )
            text = (response.text or "").strip()
        except Exception as e:
            logger.error("ai_analysis_failed", error=str(e), model=self._settings.model_name)
            return OperationResult.fail(FailureReason.SERVICE_FAILURE, messages.AI_REQUEST_FAILED)

        if not text:
            logger.warning("ai_analysis_empty", model=self._settings.model_name)
            return OperationResult.fail(FailureReason.SERVICE_FAILURE, messages.AI_EMPTY_RESPONSE)

        logger.info("ai_analysis_completed", chars=len(text))
        return OperationResult.success(text)

    async def analyze_financials(self, transactions: Iterable[Transaction]) -> str:
        """Report text, or a placeholder explaining why there is none."""
        result = await self.analyze(transactions)
        return result.value if result.ok else result.message
