"""Built-in analysis prompts (ja / en) and the builder that selects or overrides them."""
from __future__ import annotations

from typing import Literal

Language = Literal["ja", "en"]
LANGUAGES: tuple[str, ...] = ("ja", "en")
DEFAULT_LANGUAGE: Language = "ja"

ANALYSIS_SYSTEM_JA = """文章を分析して、以下の2つを抽出してください：

1. 文章の抽象的なテンプレート構造（エレベーターピッチ、問題解決型、ストーリーテリング型など）
2. 各セクションの具体的な内容と役割

JSON形式で出力してください：
{
  "abstractTemplate": {
    "name": "識別されたテンプレートパターン名（例：Problem-Solution、AIDA、Hero's Journey）",
    "formula": "抽象的な構成式（例：[問題提起] → [現状分析] → [解決策] → [ベネフィット] → [行動喚起]）",
    "components": [
      {
        "name": "コンポーネント名（例：Hook、Problem Statement）",
        "purpose": "このコンポーネントの目的",
        "examples": ["実際の文章から抽出した例"],
        "patterns": ["使用されているパターン"],
        "position": 順序,
        "weight": 重要度(0-1)
      }
    ],
    "flow": "情報の流れ方（Linear/Pyramid/Circular）",
    "persuasionTechniques": ["使用されている説得技法"]
  },
  "elements": [
    {
      "type": "heading"|"paragraph"|"list"|"quote"|"code"|"section",
      "level": 1-6,
      "content": "内容要約",
      "intent": "意図",
      "persuasion": "訴求ポイント",
      "technique": "技法",
      "keywords": ["要素のキーワード"]
    }
  ],
  "keywords": ["キーワード"],
  "patterns": {
    "introduction": "導入パターン",
    "body": "展開パターン",
    "conclusion": "結論パターン"
  },
  "confidence": 0.7
}

重要：
1. abstractTemplateで汎用的に再利用可能なパターンを抽出してください。
2. confidenceは必ず0.0から1.0の間の数値を入れてください（通常0.6-0.8）。
3. JSONのみを出力し、説明文は付けないでください。"""

ANALYSIS_SYSTEM_EN = """Analyze the text and extract the following two elements:

1. Abstract template structure (Elevator Pitch, Problem-Solution, Storytelling, etc.)
2. Specific content and role of each section

Output in JSON format:
{
  "abstractTemplate": {
    "name": "Identified template pattern name (e.g., Problem-Solution, AIDA, Hero's Journey)",
    "formula": "Abstract composition formula (e.g., [Problem] → [Analysis] → [Solution] → [Benefits] → [Call to Action])",
    "components": [
      {
        "name": "Component name (e.g., Hook, Problem Statement)",
        "purpose": "Purpose of this component",
        "examples": ["Examples extracted from the actual text"],
        "patterns": ["Patterns used"],
        "position": sequence_number,
        "weight": importance(0-1)
      }
    ],
    "flow": "Information flow (Linear/Pyramid/Circular)",
    "persuasionTechniques": ["Persuasion techniques used"]
  },
  "elements": [
    {
      "type": "heading"|"paragraph"|"list"|"quote"|"code"|"section",
      "level": 1-6,
      "content": "Content summary",
      "intent": "Intent",
      "persuasion": "Appeal points",
      "technique": "Technique",
      "keywords": ["element keywords"]
    }
  ],
  "keywords": ["keywords"],
  "patterns": {
    "introduction": "Introduction pattern",
    "body": "Body pattern",
    "conclusion": "Conclusion pattern"
  },
  "confidence": 0.7
}

Important:
1. Extract a reusable pattern in the abstractTemplate.
2. confidence must be a number between 0.0 and 1.0 (typically 0.6-0.8).
3. Output only the JSON object, no explanation."""

MERGE_PROMPT_JA = """複数の分析結果を統合して、一貫性のあるテンプレートを作成してください。
重複を排除し、パターンを一般化してください。"""
MERGE_PROMPT_EN = """Merge multiple analysis results to create a consistent template.
Eliminate duplicates and generalize patterns."""

SUPPLEMENT_PROMPT_JA = "テンプレートの不足部分を補完し、全体の整合性を確認してください。"
SUPPLEMENT_PROMPT_EN = "Supplement missing parts of the template and verify overall consistency."

PROMPTS: dict[str, dict[str, str]] = {
    "ja": {"analysis": ANALYSIS_SYSTEM_JA, "merge": MERGE_PROMPT_JA, "supplement": SUPPLEMENT_PROMPT_JA},
    "en": {"analysis": ANALYSIS_SYSTEM_EN, "merge": MERGE_PROMPT_EN, "supplement": SUPPLEMENT_PROMPT_EN},
}


class PromptBuilder:
    """Picks the built-in prompt for a language; non-empty custom prompts take precedence."""

    def __init__(self, language: str = DEFAULT_LANGUAGE, custom: dict[str, str] | None = None) -> None:
        self.language = language if language in LANGUAGES else DEFAULT_LANGUAGE
        self.custom = dict(custom or {})

    def _get(self, key: str) -> str:
        return self.custom.get(key) or PROMPTS[self.language][key]

    def analysis_prompt(self) -> str:
        return self._get("analysis")

    def merge_prompt(self) -> str:
        return self._get("merge")

    def supplement_prompt(self) -> str:
        return self._get("supplement")

    def set_language(self, language: str) -> None:
        self.language = language if language in LANGUAGES else DEFAULT_LANGUAGE

    def set_custom_prompts(self, custom: dict[str, str]) -> None:
        self.custom = dict(custom)


def build_analysis_messages(builder: PromptBuilder, fragment: str) -> list[dict[str, str]]:
    """[system, user] messages for one fragment analysis."""
    return [
        {"role": "system", "content": builder.analysis_prompt()},
        {"role": "user", "content": fragment or ""},
    ]
