"""LLM model configuration for the workout logger.

Centralized model definitions per role:
- Orchestrator: drives the tool-using conversation
- Extraction: structured workout generation (largest schema, strongest model;
  complex multi-phase sessions get a larger model and output budget)
- Detection / classification / time extraction: small fast models
- Normalization: schema repair
- Summary: short user-facing text
"""

# Orchestrator
ORCHESTRATOR_MODEL = "gpt-4o"

# Structured extraction
EXTRACTION_MODEL = "gpt-4o"
EXTRACTION_MAX_TOKENS = 8192
COMPLEX_EXTRACTION_MODEL = "gpt-4.1"
COMPLEX_EXTRACTION_MAX_TOKENS = 16384

# Lightweight classification
DISCIPLINE_DETECTION_MODEL = "gpt-4o-mini"
CLASSIFICATION_MODEL = "gpt-4o-mini"
TIME_EXTRACTION_MODEL = "gpt-4o-mini"

# Repair and text
NORMALIZATION_MODEL = "gpt-4o"
SUMMARY_MODEL = "gpt-4o-mini"
