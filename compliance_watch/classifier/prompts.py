from __future__ import annotations

from compliance_watch.targets.models import MonitoredTarget


MAX_DIFF_CHARS = 12000

SYSTEM_PROMPT = """You are an assistant that reviews changes to government and regulatory web pages for employment-law compliance monitoring.

Focus on detecting:
- Legal requirement changes
- Deadline modifications
- Rate or threshold updates
- Policy changes
- New regulations or amendments
- Enforcement updates
- Training requirement changes
- Posting requirement updates

Ignore:
- Minor formatting changes
- Navigation updates
- Cosmetic modifications
- Temporary notices
- Marketing content changes
- Cookie banners
- Social media updates

Analyze the provided diff and answer with a single JSON object:
{
  "score": 0-100 (how meaningful the change is for compliance),
  "isMeaningful": true/false,
  "reasoning": "Brief explanation focusing on compliance impact"
}"""


def truncate_diff(text: str, limit: int = MAX_DIFF_CHARS) -> str:
    if len(text) <= limit:
        return text
    omitted = len(text) - limit
    return f"{text[:limit]}\n... [{omitted} characters truncated]"


def build_user_prompt(target: MonitoredTarget, diff_text: str, *, limit: int = MAX_DIFF_CHARS) -> str:
    return (
        f"Website: {target.name}\n"
        f"URL: {target.url}\n"
        "\n"
        "Change diff:\n"
        f"{truncate_diff(diff_text, limit)}\n"
        "\n"
        "Please analyze this change for compliance significance."
    )
