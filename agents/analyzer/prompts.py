"""
Prompts for the AI Resolution Analyzer

The system prompt is category-aware; the user prompt carries the market
and a dump of every source. The tool schema fixes the shape of the
structured answer.
"""

from __future__ import annotations

import json

from core.schemas import Category, Market, SourceData

RESOLUTION_TOOL_NAME = "resolve_prediction_market"

BASE_SYSTEM_PROMPT = """You are an AI oracle for a prediction market platform. Your role is to analyze data from multiple sources and provide accurate, unbiased resolutions to prediction markets.

You must:
- Be strictly objective and fact-based
- Cross-verify data from multiple sources
- Identify and report any data inconsistencies
- Only provide high-confidence resolutions
- Clearly explain your reasoning
- Consider edge cases and potential errors

You must NOT:
- Make assumptions without data
- Favor any particular outcome
- Ignore contradictory data
- Provide resolutions with low confidence"""

CATEGORY_GUIDANCE: dict[Category, str] = {
    Category.CRYPTO: """For cryptocurrency markets:
- Use exact price data from exchanges
- Compare multiple exchange prices to detect anomalies
- Consider volume and market cap for context
- Note any flash crashes or manipulation
- Be precise with decimal places
- Account for different time zones""",
    Category.SPORTS: """For sports markets:
- Use official results only
- Verify final scores from multiple sources
- Check for overturned calls or penalties
- Note any postponements or cancellations
- Consider overtime/extra time rules
- Be clear about winning conditions""",
    Category.POLITICS: """For political markets:
- Use official government sources
- Wait for certified results
- Note any recounts or challenges
- Consider different reporting timelines
- Verify with multiple news agencies
- Be cautious of preliminary results""",
    Category.WEATHER: """For weather markets:
- Use official meteorological data
- Note measurement location and time
- Consider measurement precision
- Verify with multiple weather services
- Account for local vs UTC time
- Note any data corrections""",
    Category.ENTERTAINMENT: """For entertainment markets:
- Use official sources (award shows, studios, etc.)
- Verify with industry publications
- Note any ties or special circumstances
- Consider different categories carefully
- Verify dates and eligibility""",
    Category.TECHNOLOGY: """For technology markets:
- Use official product releases
- Verify with company announcements
- Check technical specifications carefully
- Note any delays or changes
- Consider beta vs full release""",
    Category.FINANCE: """For finance markets:
- Use official market data
- Note market close times
- Consider adjusted vs unadjusted prices
- Verify with multiple financial sources
- Account for stock splits, dividends
- Be precise with decimal places""",
}

USER_PROMPT_TEMPLATE = """# Prediction Market Resolution Analysis

## Market Information
- **Question:** {question}
- **Description:** {description}
- **Category:** {category}
- **Market End Time:** {end_time}
- **Created by:** {creator}

## Data from Multiple Sources
{sources}

## Your Task
Analyze the data from all sources and determine:
1. Should the market resolve to YES or NO?
2. What is your confidence level (0-10000, where 10000 = 100%)?
3. What are the key reasoning steps that led to your conclusion?
4. What specific data points support your decision?
5. Are there any warnings or concerns?

## Requirements
- Be objective and data-driven
- Cross-reference multiple sources when available
- Note any discrepancies between sources
- Treat sources marked FALLBACK as missing data that needs manual verification
- Minimum confidence threshold: {min_confidence}%
- If confidence is below threshold, explain why

Analyze carefully and provide your resolution by calling `{tool_name}`."""

SOURCE_TEMPLATE = """**Source: {source}**{marker}
- Category: {category}
- Fetched: {fetched_at}
- Confidence: {confidence}%
- Data: {data}
"""

FALLBACK_MARKER = " (FALLBACK - no usable provider data, manual verification required)"

RESOLUTION_TOOL_SCHEMA = {
    "type": "object",
    "description": "Analyze the market data and provide a resolution with confidence score",
    "properties": {
        "outcome": {
            "type": "boolean",
            "description": "The resolution outcome: true for YES, false for NO. Base this strictly on the data provided.",
        },
        "confidence": {
            "type": "number",
            "description": "Confidence level from 0-10000 (0-100%). Must be at or above the stated minimum to proceed with automatic resolution.",
            "minimum": 0,
            "maximum": 10000,
        },
        "reasoning": {
            "type": "array",
            "description": "Step-by-step reasoning that led to this conclusion. Each step should be clear and data-driven.",
            "items": {"type": "string"},
        },
        "dataPoints": {
            "type": "array",
            "description": "Specific data points from the sources that support this resolution. Include source name and exact values.",
            "items": {"type": "string"},
        },
        "warnings": {
            "type": "array",
            "description": "Any concerns, data inconsistencies, or edge cases to be aware of. Leave empty if none.",
            "items": {"type": "string"},
        },
        "alternativeOutcomes": {
            "type": "array",
            "description": "Other possible interpretations or outcomes with their probabilities. Useful for borderline cases.",
            "items": {
                "type": "object",
                "properties": {
                    "outcome": {"type": "boolean"},
                    "probability": {"type": "number", "description": "0-1"},
                    "reasoning": {"type": "string"},
                },
            },
        },
    },
    "required": ["outcome", "confidence", "reasoning", "dataPoints"],
}


def get_system_prompt(category: Category) -> str:
    guidance = CATEGORY_GUIDANCE.get(category)
    if guidance is None:
        return BASE_SYSTEM_PROMPT
    return f"{BASE_SYSTEM_PROMPT}\n\n{guidance}"


def format_source(source: SourceData) -> str:
    return SOURCE_TEMPLATE.format(
        source=source.source,
        marker=FALLBACK_MARKER if source.is_fallback else "",
        category=source.category.value,
        fetched_at=source.fetched_at.isoformat(),
        confidence=source.confidence / 100,
        data=json.dumps(source.data.model_dump(mode="json"), indent=2, ensure_ascii=False),
    )


def build_prompt(market: Market, sources: list[SourceData], min_confidence: int) -> str:
    return USER_PROMPT_TEMPLATE.format(
        question=market.question,
        description=market.description or "(none)",
        category=market.category.value,
        end_time=market.end_time.isoformat(),
        creator=market.creator,
        sources="\n".join(format_source(s) for s in sources) or "(no sources)",
        min_confidence=min_confidence / 100,
        tool_name=RESOLUTION_TOOL_NAME,
    )
