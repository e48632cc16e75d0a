"""
Prompt construction for the reading assistant.

Two conversations are built here: explaining a highlighted selection, and
turning a set of reading notes into a report. Paper context is truncated to
its most recent characters before being embedded.
"""

from __future__ import annotations

from pydantic import BaseModel

from papermind.llm.models import LLMMessage, MessageRole

EXPLANATION_CONTEXT_CHARS = 15000
REPORT_CONTEXT_CHARS = 30000

EXPLANATION_SYSTEM_PROMPT = """Role: 你是专业的学术科研助手，也是用户的私人阅读笔记员。
Context: 提供了论文的前文内容。
Selection: 用户高亮的文本。

Task: 针对用户的高亮文本，分别生成【AI 深度解析】和【用户标记动机推测】。

Output Structure (Markdown):

### 🤖 AI 深度解析 (Analysis)
(客观视角。基于 Context 分析这段话在论文中的地位。例如：这是一个核心假设、实验结论、还是方法创新？它回答了前文的什么问题？)

### 👤 我的标记理解 (Why I Marked This)
(第一人称视角 "我"。尝试站在用户角度，推测用户为什么觉得这段话重要。例如："我标记这段是因为它解释了模型收敛的核心原因。" 或 "这是一个非常巧妙的实验设置，值得我后续参考。")

要求:
- 使用 Markdown 三级标题 "###" 严格分隔这两个部分。
- 语言简洁、专业、有洞察力。"""

REPORT_SYSTEM_PROMPT = """Role: 你是专业的学术科研助手。你正在协助用户整理一份基于这篇论文的"深度阅读记录"。

Task: 不要只是罗列笔记。请结合全文 Context 和用户的 User Notes (用户的关注点)，生成一份连贯的、有深度的**研究综述**。

你的报告应该体现"用户是如何阅读这篇论文的"，并在此基础上通过全文背景进行补全。

Output Structure (Markdown):

# [论文标题]

## 🎯 核心贡献 (Executive Summary)
(基于全文，用简练的语言总结论文解决的问题、方法和核心贡献。约 100-150 字)

## 🧠 阅读路径与深度解析 (User's Reading Path)
(这是最核心的部分。请将用户的[User Notes]按逻辑（如：背景/方法/实验/结论）进行归类串联。**不要**按笔记顺序 1,2,3 罗列。)

*   **[逻辑模块一，例如：核心假设与动机]**
    *   用户关注了："[引用用户笔记原文片段]"
    *   **深度解读**: [结合 AI Insight 和 Context，说明为什么这个点很重要。它在论文论证链条中的作用是什么？]

*   **[逻辑模块二，例如：关键技术细节]**
    *   ...

## 💡 启发与总结 (Key Takeaways)
(基于用户的关注点，总结这篇论文对用户可能的研究启发。如果用户关注了实验数据，强调实验设计的精妙处；如果关注了公式，强调推导的创新性。)
"""


class ReadingNote(BaseModel):
    """A highlight made while reading, with an optional earlier explanation."""
    text: str
    page: int | str
    explanation: str | None = None


def truncate_context(text: str, max_length: int = EXPLANATION_CONTEXT_CHARS) -> str:
    """Keep only the last ``max_length`` characters of the paper context."""
    if max_length < 1:
        raise ValueError("max_length must be at least 1")
    if len(text) <= max_length:
        return text
    return text[-max_length:]


def format_notes(notes: list[ReadingNote]) -> str:
    """Render notes as numbered blocks separated by blank lines."""
    blocks = []
    for i, note in enumerate(notes, start=1):
        block = f'[Note {i}]: "{note.text}" (Page {note.page})'
        if note.explanation:
            block += f"\n   -> [AI Insight]: {note.explanation}"
        blocks.append(block)
    return "\n\n".join(blocks)


def build_explanation_messages(
    context: str,
    selection: str,
    max_context_chars: int = EXPLANATION_CONTEXT_CHARS,
) -> list[LLMMessage]:
    """Messages asking for an analysis of a highlighted selection."""
    trimmed_context = truncate_context(context, max_context_chars)
    return [
        LLMMessage(role=MessageRole.SYSTEM, content=EXPLANATION_SYSTEM_PROMPT),
        LLMMessage(
            role=MessageRole.USER,
            content=(
                f'Context: """{trimmed_context}"""\n\n'
                f'Selection: """{selection}"""'
            ),
        ),
    ]


def build_report_messages(
    context: str,
    notes: list[ReadingNote],
    max_context_chars: int = REPORT_CONTEXT_CHARS,
) -> list[LLMMessage]:
    """Messages asking for a reading report built from the user's notes."""
    trimmed_context = truncate_context(context, max_context_chars)
    return [
        LLMMessage(role=MessageRole.SYSTEM, content=REPORT_SYSTEM_PROMPT),
        LLMMessage(
            role=MessageRole.USER,
            content=(
                f'Context: """{trimmed_context}"""\n\n'
                f"User Notes:\n{format_notes(notes)}"
            ),
        ),
    ]
