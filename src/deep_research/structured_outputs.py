"""
Structured Outputs for Deep Research

Pydantic schemas passed to ``llm.with_structured_output()``:
- ClarifyingQuestions: questions asked before research starts
- SerpQueryList: search queries from the query planner
- SerpLearnings: learnings + follow-up question from one result batch
- ResearchPlanOutput: table of contents from the plan generator
- FinalReportOutput: the synthesized Markdown report body
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


# ==============================================================================
# Clarifying questions
# ==============================================================================


class ClarifyingQuestion(BaseModel):
    """A question to ask the user before researching."""

    id: str = Field(default="", description="Unique identifier for the question")
    question: str = Field(description="The question to ask")
    goal: str = Field(description="Why this question is important for the research")
    type: Literal["text", "multiline", "choice"] = Field(
        default="text", description="Type of question (text, multiline, or choice)"
    )
    options: Optional[list[str]] = Field(
        default=None, description="Options for choice questions"
    )
    suggested_answer: str = Field(
        default="", description="A suggested answer the user can accept or modify"
    )


class ClarifyingQuestions(BaseModel):
    questions: list[ClarifyingQuestion] = Field(
        description="List of questions to ask before starting research (2-4)"
    )


# ==============================================================================
# Query planner
# ==============================================================================


class SerpQuery(BaseModel):
    query: str = Field(description="The SERP query")
    research_goal: str = Field(
        description=(
            "First talk about the goal of the research that this query is meant to "
            "accomplish, then go deeper into how to advance the research once the "
            "results are found, mention additional research directions. Be as specific "
            "as possible, especially for additional research directions."
        )
    )


class SerpQueryList(BaseModel):
    queries: list[SerpQuery] = Field(description="List of unique SERP queries")


# ==============================================================================
# Summarizer
# ==============================================================================


class SerpLearnings(BaseModel):
    learnings: list[str] = Field(
        description="Key learnings extracted from the search results"
    )
    follow_up_questions: list[str] = Field(
        default_factory=list,
        description="Follow-up questions for deeper research (at most one)",
    )


# ==============================================================================
# Plan generator
# ==============================================================================


class PlanSectionOutput(BaseModel):
    heading: str
    subheadings: list[str] = Field(default_factory=list)
    research_queries: list[str] = Field(
        default_factory=list,
        description="Specific search queries to research this section",
    )


class TableOfContents(BaseModel):
    title: str
    sections: list[PlanSectionOutput]


class ResearchPlanOutput(BaseModel):
    """
    Raw plan as returned by the model.

    Estimates are left loose here; the plan generator validates, defaults
    and clamps them when converting to ResearchPlan.
    """

    table_of_contents: TableOfContents
    estimated_depth: Optional[float] = Field(
        default=None, description="Estimated optimal research depth (1-5)"
    )
    estimated_breadth: Optional[float] = Field(
        default=None, description="Estimated optimal research breadth (3-10)"
    )


# ==============================================================================
# Report synthesizer
# ==============================================================================


class FinalReportOutput(BaseModel):
    report_markdown: str = Field(description="Final report on the topic in Markdown")
