"""Extraction prompt sent to the text-generation providers."""

from __future__ import annotations

from ..records import EXCLUDED_CATEGORY

EXTRACTION_INSTRUCTIONS = f"""You are a specialized JSON extraction tool. Extract movies and series from the provided text into a clean JSON array.

Each entry must follow this exact schema:
{{
  "title": string,
  "year": number (for movies only, if available),
  "category": string ("Hollywood", "Foreign", "Anime", "TV Series"),
  "extra_info": string (e.g., "Download Hollywood Movie", "Episode 15-18 Added", "Complete"),
  "type": string ("movie" or "series"),
  "rating": number (optional, if available, on a scale of 1-10)
}}

Critical rules:
1. Output ONLY the raw JSON array with no explanations, no markdown code blocks, and no backticks
2. Do not include {EXCLUDED_CATEGORY} content
3. For movies, extract year as an integer if available
4. For series, ignore the year unless explicitly mentioned
5. Preserve episode/season information in extra_info
6. Ensure the output is valid parseable JSON with no additional text

Examples of correct format:
[{{"title":"Movie 1","year":2023,"category":"Hollywood","extra_info":"Action","type":"movie"}},{{"title":"Series 1","category":"TV Series","extra_info":"Season 2","type":"series"}}]

YOUR ENTIRE RESPONSE MUST BE A VALID JSON ARRAY ONLY. DO NOT INCLUDE ANY OTHER TEXT.
"""


def build_extraction_prompt(text: str) -> str:
    """Return the instructions followed by the scraped page *text*."""
    return EXTRACTION_INSTRUCTIONS + text
