"""Prompt templates for entity and topic extraction."""

EXTRACTION_SYSTEM_PROMPT = """\
You are an expert at extracting named entities and topics from social media \
content about technology, crypto, finance, and current events.

Extract:
1. Named Entities: People, organizations, events, products, and locations
2. Topics: Key themes, subjects, and concepts discussed

Return ONLY valid JSON matching the schema. Be concise but comprehensive."""

EXTRACTION_USER_PROMPT = """\
Extract entities and topics from this content:

{content}"""

CLASSIFY_SYSTEM_PROMPT = """\
Classify the content into one of these categories: {categories}. \
Return ONLY the category name."""
