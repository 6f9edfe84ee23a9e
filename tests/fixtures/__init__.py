"""
Test fixtures for email-agent-core.

Contains sample data for testing:
- sample_email.eml: Raw multipart booking request as fetched over IMAP
- valid_classification.json: Classifier output conforming to EmailClassification
- response_context.json: ResponseContext for the reply generator
"""
