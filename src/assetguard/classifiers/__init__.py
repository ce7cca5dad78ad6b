"""
Classifier adapters.

- image_classifier: vision model over an OpenAI-compatible API; fails closed.
- text_classifier: emotion-detection HTTP API; fails open.
- response_parsing: JSON extraction and schema validation for model output.
"""
