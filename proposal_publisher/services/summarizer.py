"""Summarise proposal documents for the discussion body using LangChain."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Protocol, Sequence

from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.prompts import ChatPromptTemplate

from proposal_publisher.models.document import ProposalSummary
from proposal_publisher.models.errors import ConfigurationError, SummaryGenerationError, ToolNotFoundError
from proposal_publisher.services.commands import SupportsCommands, looks_like_missing_tool
from proposal_publisher.services.settings import PublishSettings
from proposal_publisher.utils.text import extract_summary, strip_code_fence


class SupportsInvoke(Protocol):
    """Protocol describing the subset of LangChain interfaces we rely on."""

    def invoke(self, input: Any, **kwargs: Any) -> BaseMessage | str:
        """Invoke the underlying language model."""


DEFAULT_SYSTEM_PROMPT = (
    "You are summarizing a CUE language proposal for a GitHub discussion. "
    "Create a clear, concise summary that captures the essence of the proposal."
)

DEFAULT_HUMAN_PROMPT = """
Focus on:
1. The problem being addressed
2. The proposed solution
3. Some key examples or use cases
4. Key benefits and impact
5. Any important technical details or considerations

Guidelines:
- Write 3-5 paragraphs
- Use clear, accessible language
- Highlight the most important aspects
- Format in markdown
- Don't include metadata lines (Status:, Author:, etc.)
- Focus on the actual proposal content

Please summarize this proposal:

{proposal}
""".strip()

GENERATED_NOTE = "\n\n_[Summary generated automatically]_"


def _default_prompt() -> ChatPromptTemplate:
    return ChatPromptTemplate.from_messages(
        [
            ("system", DEFAULT_SYSTEM_PROMPT),
            ("human", DEFAULT_HUMAN_PROMPT),
        ]
    )


class CommandLineChatModel:
    """Chat model that pipes the rendered prompt through a command-line tool."""

    def __init__(self, command: Sequence[str], runner: SupportsCommands) -> None:
        self.command = tuple(command)
        self.runner = runner

    def invoke(self, input: Any, **kwargs: Any) -> AIMessage:
        prompt = self._render(input)
        try:
            result = self.runner.run(self.command, input=prompt)
        except ToolNotFoundError as exc:
            raise SummaryGenerationError(f"{self.command[0]} CLI not available") from exc

        if not result.ok:
            if looks_like_missing_tool(result):
                raise SummaryGenerationError(f"{self.command[0]} CLI not available")
            raise SummaryGenerationError(f"summary generation failed: {result.stderr.strip()}")

        text = result.stdout.strip()
        if not text:
            raise SummaryGenerationError("summary command returned empty output")
        return AIMessage(content=text)

    @staticmethod
    def _render(input: Any) -> str:
        if isinstance(input, list):
            parts = [str(getattr(message, "content", message)) for message in input]
            return "\n\n".join(part for part in parts if part)
        return str(input)


def create_summary_llm(settings: PublishSettings, runner: SupportsCommands) -> SupportsInvoke:
    """Return the chat model selected by ``settings.summary_provider``."""

    provider = settings.summary_provider.lower()
    if provider == "command":
        return CommandLineChatModel(settings.summary_command, runner)

    if provider == "openai":
        try:
            from langchain_openai import ChatOpenAI
        except ImportError as exc:
            raise SummaryGenerationError("Install langchain-openai to use the OpenAI summary provider") from exc
        try:
            return ChatOpenAI(model=settings.summary_model or "gpt-4o-mini", temperature=0.2)
        except Exception as exc:  # missing credentials surface as client-specific errors
            raise SummaryGenerationError(f"OpenAI summary model unavailable: {exc}") from exc

    raise ConfigurationError(f"unsupported summary provider: {settings.summary_provider}")


@dataclass(slots=True)
class ProposalSummarizer:
    """Produce the discussion summary, preferring the language model when enabled."""

    llm: SupportsInvoke | None = None
    prompt: ChatPromptTemplate = field(default_factory=_default_prompt)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def summarize(self, content: str, *, use_ai: bool = False) -> ProposalSummary:
        """Return a summary of ``content``; never raises."""

        if use_ai and self.llm is not None:
            try:
                text = self.generate(content)
            except Exception as exc:  # model backends raise their own error types
                self.logger.warning("AI summary generation failed: %s, falling back to text extraction", exc)
            else:
                self.logger.info("Generated AI summary for proposal")
                return ProposalSummary(text=text, generated=True)

        return ProposalSummary(text=extract_summary(content))

    def generate(self, content: str) -> str:
        """Invoke the language model and return the cleaned summary text."""

        if self.llm is None:
            raise SummaryGenerationError("no language model configured")

        messages = self.prompt.format_messages(proposal=content)
        response = self.llm.invoke(messages)
        text = self._extract_content(response).strip()
        text = strip_code_fence(text) or text
        if not text:
            raise SummaryGenerationError("language model returned an empty summary")
        return text + GENERATED_NOTE

    @staticmethod
    def _extract_content(response: BaseMessage | str) -> str:
        if isinstance(response, BaseMessage):
            content = response.content
            if isinstance(content, str):
                return content
            return "".join(part if isinstance(part, str) else str(part.get("text", "")) for part in content)
        return str(response)
