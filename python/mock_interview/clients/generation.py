"""
Interview content generation using the OpenAI Agents SDK.

Two agents share one model configuration:
  - Question Writer: reads the job and the resume image, returns questions
    as structured output.
  - Interview Evaluator: reads the job, resume image and every
    question/transcript pair, returns free-form feedback ending in three
    labeled score lines.

Supports both OpenAI and Azure OpenAI backends:
  - OpenAI: Set OPENAI_API_KEY (OPENAI_MODEL optional, default gpt-4o-mini)
  - Azure OpenAI: Set AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_KEY, AZURE_OPENAI_DEPLOYMENT

Last Grunted: 10/19/2026
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Optional, Union

from agents import Agent, OpenAIChatCompletionsModel, Runner
from openai import AsyncAzureOpenAI
from pydantic import BaseModel, Field

from ..config import DEFAULT_OPENAI_MODEL, DEFAULT_QUESTION_COUNT
from ..errors import GenerationError
from ..models import InlineImage


__all__ = [
    "AgentContentGenerator",
    "GeneratedQuestions",
    "normalize_questions",
    "build_feedback_prompt",
    "build_question_prompt",
]


logger = logging.getLogger(__name__)


TRANSCRIPT_UNAVAILABLE = "(Transcription Unavailable)"
FEEDBACK_UNAVAILABLE = "AI feedback generation failed."
MIN_QUESTION_LENGTH = 15

_LIST_MARKER = re.compile(r"^\s*[\d\.\-\*\+]+\s*", re.MULTILINE)


def _get_openai_config(model: Optional[str] = None) -> tuple[str, Optional[AsyncAzureOpenAI]]:
    """
    Determine OpenAI configuration based on environment variables.

    Returns:
        Tuple of (model_name, azure_client_or_none)
    """
    azure_endpoint = os.environ.get("AZURE_OPENAI_ENDPOINT")
    azure_key = os.environ.get("AZURE_OPENAI_KEY")
    azure_deployment = os.environ.get("AZURE_OPENAI_DEPLOYMENT")
    api_type = os.environ.get("OPENAI_API_TYPE", "").lower()

    if api_type == "azure" or (azure_endpoint and azure_key and azure_deployment):
        if not all([azure_endpoint, azure_key, azure_deployment]):
            raise ValueError(
                "Azure OpenAI requires AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_KEY, "
                "and AZURE_OPENAI_DEPLOYMENT environment variables"
            )

        logger.info("Using Azure OpenAI: %s, deployment: %s", azure_endpoint, azure_deployment)
        azure_client = AsyncAzureOpenAI(
            azure_endpoint=azure_endpoint,
            api_key=azure_key,
            api_version=os.environ.get("AZURE_OPENAI_API_VERSION", "2024-08-01-preview"),
        )
        return azure_deployment, azure_client

    resolved = model or os.environ.get("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL
    logger.info("Using OpenAI: model %s", resolved)
    return resolved, None


# =============================================================================
# Structured Output
# =============================================================================

class GeneratedQuestions(BaseModel):
    """Questions returned by the question writer."""

    questions: list[str] = Field(
        ...,
        description="Plain interview questions, one per entry, no numbering or bullets",
    )


def normalize_questions(raw: list[str], limit: int = DEFAULT_QUESTION_COUNT) -> list[str]:
    """
    Clean model output into plain questions.

    Strips list numbering and bold markers, splits stray multi-line entries,
    drops fragments of 15 characters or fewer and keeps the first ``limit``.

    Example:
        >>> normalize_questions(["1. **Tell me about your Go services?**"])
        ['Tell me about your Go services?']
    """
    cleaned: list[str] = []
    for entry in raw:
        text = _LIST_MARKER.sub("", entry).replace("**", "")
        for line in text.splitlines():
            line = line.strip()
            if len(line) > MIN_QUESTION_LENGTH:
                cleaned.append(line)
    return cleaned[:limit]


# =============================================================================
# Prompts
# =============================================================================

QUESTION_WRITER_INSTRUCTIONS = """You are an AI interviewer preparing a short video interview.

Read the job posting and the attached resume image, then write interview
questions that are relevant to the role and to this candidate's background,
skills and experience. Mix technical and behavioral questions.

Rules:
- Return exactly the requested number of questions.
- Each question is a single plain sentence or two.
- No numbering, bullet points, bold text or introductory/concluding text."""


EVALUATOR_INSTRUCTIONS = """You are an AI hiring assistant evaluating a candidate's recorded interview.

Analyze the job description, the attached resume image and the transcribed
answers. Provide a structured evaluation covering:
1. **Resume Analysis:** How well the resume's background and skills align with the job.
2. **Answer Quality:** Clarity, relevance, depth and communication in the answers.
3. **Overall Evaluation:** A concise summary.

Finish with integer scores between 0 and 100 in the exact format "[Score]/100":
* **Resume Score:** based only on the resume's relevance.
* **Q&A Score:** based only on the answers.
* **Overall Score:** weighted score (Resume ~45%, Q&A ~55%).

Output Format (use these headings exactly):
**Resume Analysis:**
[Analysis]

**Answer Quality:**
[Analysis]

**Overall Evaluation:**
[Summary]

**Scores:**
Resume Score: [Score]/100
Q&A Score: [Score]/100
Overall Score: [Score]/100"""


def build_question_prompt(
    job_title: str,
    job_description: str,
    experience: str,
    question_count: int,
) -> str:
    return "\n".join(
        [
            f'Generate {question_count} diverse interview questions for a candidate '
            f'applying for the "{job_title}" role.',
            f'The job description is: "{job_description}"',
            f"The candidate's stated experience is: {experience}.",
            "Review the attached resume image to understand the candidate's background.",
        ]
    )


def build_feedback_prompt(
    job_title: str,
    job_description: str,
    experience: str,
    questions: list[str],
    transcripts: list[str],
) -> str:
    parts = [
        f'Evaluate this interview for the "{job_title}" role.',
        f'Job Description: "{job_description}"',
        f"Candidate Stated Experience: {experience}",
        "Candidate Resume: [Attached Image]",
        "",
        "Interview Questions & Answers:",
        "---",
    ]
    for i, question in enumerate(questions):
        transcript = transcripts[i] if i < len(transcripts) else ""
        parts.append(f"Question {i + 1}: {question}")
        parts.append(f"Answer {i + 1} Transcription: {transcript or TRANSCRIPT_UNAVAILABLE}")
        parts.append("---")
    return "\n".join(parts)


def _input_items(prompt: str, image: InlineImage) -> list[dict[str, Any]]:
    return [
        {
            "role": "user",
            "content": [
                {"type": "input_text", "text": prompt},
                {"type": "input_image", "image_url": image.as_data_url(), "detail": "auto"},
            ],
        }
    ]


# =============================================================================
# Generator
# =============================================================================

class AgentContentGenerator:
    """
    Content generator backed by two openai-agents ``Agent`` instances.

    Args:
        model: Model name. If None, auto-detects from environment.
        azure_client: Optional Azure OpenAI client override.
        question_count: Number of questions to ask for and keep.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        azure_client: Optional[AsyncAzureOpenAI] = None,
        question_count: int = DEFAULT_QUESTION_COUNT,
    ) -> None:
        if azure_client is not None:
            default_model, default_azure_client = model or DEFAULT_OPENAI_MODEL, azure_client
        else:
            default_model, default_azure_client = _get_openai_config(model)
        self.model = default_model
        self.question_count = question_count
        self._azure_client = default_azure_client

        agent_model: Union[str, OpenAIChatCompletionsModel] = self.model
        if self._azure_client is not None:
            agent_model = OpenAIChatCompletionsModel(
                model=self.model,
                openai_client=self._azure_client,
            )

        self._question_agent = Agent(
            name="Question Writer",
            instructions=QUESTION_WRITER_INSTRUCTIONS,
            model=agent_model,
            output_type=GeneratedQuestions,
        )
        self._evaluator_agent = Agent(
            name="Interview Evaluator",
            instructions=EVALUATOR_INSTRUCTIONS,
            model=agent_model,
        )

        provider_info = "Azure OpenAI" if self._azure_client else "OpenAI"
        logger.info("AgentContentGenerator initialized with %s, model: %s", provider_info, self.model)

    async def generate_questions(
        self,
        job_title: str,
        job_description: str,
        experience: str,
        resume_image: InlineImage,
    ) -> list[str]:
        """
        Ask the question writer for tailored questions.

        Raises:
            GenerationError: If the agent run fails.
        """
        prompt = build_question_prompt(job_title, job_description, experience, self.question_count)
        try:
            result = await Runner.run(self._question_agent, _input_items(prompt, resume_image))
            output = result.final_output_as(GeneratedQuestions)
        except Exception as exc:
            raise GenerationError(f"Failed to generate questions: {exc}") from exc

        questions = normalize_questions(output.questions, limit=self.question_count)
        logger.info("Generated %d question(s) for %s", len(questions), job_title)
        return questions

    async def generate_feedback(
        self,
        job_title: str,
        job_description: str,
        experience: str,
        resume_image: InlineImage,
        questions: list[str],
        transcripts: list[str],
    ) -> str:
        """
        Ask the evaluator for the final feedback text.

        Raises:
            GenerationError: If the agent run fails.
        """
        prompt = build_feedback_prompt(job_title, job_description, experience, questions, transcripts)
        try:
            result = await Runner.run(self._evaluator_agent, _input_items(prompt, resume_image))
        except Exception as exc:
            raise GenerationError(f"Failed to generate feedback: {exc}") from exc

        feedback = str(result.final_output or "").strip()
        return feedback or FEEDBACK_UNAVAILABLE
