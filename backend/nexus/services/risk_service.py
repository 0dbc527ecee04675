"""
风险评分服务 - 调用 OpenAI 兼容 API 对新预订做欺诈风险评估

外部服务不可用时绝不影响预订写入：
- 未配置 API key 或关闭 LLM -> (0, "disabled")
- 调用超时/失败/返回无法解析 -> (0, "analysis unavailable")
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional
from openai import OpenAI
from nexus.config import settings

logger = logging.getLogger(__name__)

RISK_PROMPT = """Act as a Hotel Security Expert. Analyze this booking for behavioral fraud patterns.

Data:
- Guest: {guest_name}
- Phone: {phone}
- Stay Duration: {check_in} to {check_out}
- Total Amount: ₹{total_amount}
- Payment Mode: {payment_mode}

Risk Factors to check:
1. Local ID with 1-night stay.
2. High value stay (> ₹50,000) paid purely in Cash.
3. Mismatch between name complexity and simple email/phone patterns.
4. Very short lead time for high-value suites.

Return JSON only: {{ "score": number (0-100, >70 is High Risk), "reason": "concise explanation" }}"""


@dataclass(frozen=True)
class RiskAssessment:
    score: int
    reason: str


DISABLED = RiskAssessment(score=0, reason="disabled")
UNAVAILABLE = RiskAssessment(score=0, reason="analysis unavailable")


def parse_assessment(text: Optional[str]) -> Optional[RiskAssessment]:
    """从模型输出中提取 {score, reason}，分数限制在 0..100"""
    if not text:
        return None

    data: Optional[Dict[str, Any]] = None
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        # 模型可能用 markdown 代码块包裹
        match = re.search(r'\{[\s\S]*\}', text)
        if match:
            try:
                data = json.loads(match.group(0))
            except json.JSONDecodeError:
                data = None

    if not isinstance(data, dict) or "score" not in data:
        return None

    try:
        score = int(round(float(data["score"])))
    except (TypeError, ValueError):
        return None

    score = max(0, min(100, score))
    return RiskAssessment(score=score, reason=str(data.get("reason", "")))


class RiskScorer:
    """欺诈风险评分"""

    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        self.model = model or settings.LLM_MODEL
        self.client = client
        if self.client is None and settings.ENABLE_LLM and settings.OPENAI_API_KEY:
            self.client = OpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.RISK_TIMEOUT_SECONDS,
                max_retries=0,
            )

    def is_enabled(self) -> bool:
        return self.client is not None

    def score(self, draft: Dict[str, Any]) -> RiskAssessment:
        """
        对预订草稿打分

        Args:
            draft: 包含 guest_name, phone, check_in, check_out, total_amount, payment_mode
        """
        if not self.is_enabled():
            return DISABLED

        try:
            prompt = RISK_PROMPT.format(
                guest_name=draft.get("guest_name", ""),
                phone=draft.get("phone", ""),
                check_in=draft.get("check_in", ""),
                check_out=draft.get("check_out", ""),
                total_amount=draft.get("total_amount", ""),
                payment_mode=draft.get("payment_mode", ""),
            )
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content
        except Exception as e:
            logger.warning(f"Risk scoring failed, degrading to neutral score: {e}")
            return UNAVAILABLE

        assessment = parse_assessment(content)
        if assessment is None:
            logger.warning(f"Risk scoring returned unparseable content: {content!r}")
            return UNAVAILABLE
        return assessment
