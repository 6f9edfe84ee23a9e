"""Unit tests for EmailClassifier."""

import json

import pytest

from email_agent_core.agents.classifier import (
    EmailClassifier,
    email_to_classifier_input,
    to_classification,
)
from email_agent_core.core.exceptions import OutputParserError
from email_agent_core.messages import HumanMessage, SystemMessage
from email_agent_core.models.enums import CategoryEnum, PriorityEnum, SentimentEnum
from email_agent_core.models.output_models import EmailClassification


@pytest.fixture
def classification_json(valid_classification_data) -> str:
    return json.dumps(valid_classification_data)


class TestEmailClassifier:
    """Test the classification pipeline end to end with a scripted adapter."""

    @pytest.mark.asyncio
    async def test_classifies_mapping_input(self, make_llm, classification_json):
        llm = make_llm([classification_json])
        classifier = EmailClassifier(llm)

        result = await classifier.invoke({"subject": "Booking", "body": "Double room please."})

        assert isinstance(result, EmailClassification)
        assert result.category is CategoryEnum.BOOKING
        assert result.priority is PriorityEnum.MEDIUM
        assert result.sentiment is SentimentEnum.POSITIVE
        assert result.advert is False
        assert result.extracted_info.guest_name == "Maria Rossi"
        assert result.extracted_info.number_of_guests == 2
        assert result.confidence == 0.92

    @pytest.mark.asyncio
    async def test_prompt_sent_to_backend(self, make_llm, classification_json):
        llm = make_llm([classification_json])

        await EmailClassifier(llm).invoke({"subject": "Late arrival", "body": "We arrive at 23:00."})

        system_prompt, messages, _ = llm.calls[0]
        assert system_prompt == "You are an email classification assistant for a hotel."
        assert len(messages) == 1
        assert isinstance(messages[0], HumanMessage)
        assert "Email Subject: Late arrival" in messages[0].content
        assert "Email Body: We arrive at 23:00." in messages[0].content

    @pytest.mark.asyncio
    async def test_accepts_email_record(self, make_llm, classification_json, sample_email_record):
        llm = make_llm([classification_json])

        await EmailClassifier(llm).invoke(sample_email_record)

        content = llm.calls[0][1][0].content
        assert "Booking request for March" in content
        assert "double room from March 20" in content

    @pytest.mark.asyncio
    async def test_fenced_json_output(self, make_llm, classification_json):
        llm = make_llm([f"Here is the result:\n```json\n{classification_json}\n```"])

        result = await EmailClassifier(llm).invoke({"subject": "s", "body": "b"})

        assert result.category is CategoryEnum.BOOKING

    @pytest.mark.asyncio
    async def test_body_truncated(self, make_llm, classification_json):
        llm = make_llm([classification_json])
        body = "First sentence here. Second sentence follows. Third one is cut."

        await EmailClassifier(llm, body_limit=45).invoke({"subject": "s", "body": body})

        content = llm.calls[0][1][0].content
        assert "Email Body: First sentence here. Second sentence follows.\n" in content
        assert "Third one" not in content

    @pytest.mark.asyncio
    async def test_missing_field_rejected(self, make_llm, valid_classification_data):
        del valid_classification_data["sentiment"]
        llm = make_llm([json.dumps(valid_classification_data)])

        with pytest.raises(OutputParserError, match="Missing required field: sentiment"):
            await EmailClassifier(llm).invoke({"subject": "s", "body": "b"})

    @pytest.mark.asyncio
    async def test_value_outside_taxonomy_rejected(self, make_llm, valid_classification_data):
        valid_classification_data["category"] = "spam"
        llm = make_llm([json.dumps(valid_classification_data)])

        with pytest.raises(OutputParserError) as exc_info:
            await EmailClassifier(llm).invoke({"subject": "s", "body": "b"})

        assert '"spam"' in exc_info.value.llm_output

    @pytest.mark.asyncio
    async def test_non_json_output_rejected(self, make_llm):
        llm = make_llm(["I think this is a booking."])

        with pytest.raises(OutputParserError):
            await EmailClassifier(llm).invoke({"subject": "s", "body": "b"})

    @pytest.mark.asyncio
    async def test_invalid_input_type(self, make_llm):
        with pytest.raises(TypeError):
            await EmailClassifier(make_llm()).invoke("just a string")

    @pytest.mark.asyncio
    async def test_generation_overrides_reach_backend(self, make_llm, classification_json):
        llm = make_llm([classification_json])

        await EmailClassifier(llm).invoke(
            {"subject": "s", "body": "b"},
            {"generation": {"temperature": 0.0}},
        )

        assert llm.calls[0][2].temperature == 0.0

    @pytest.mark.asyncio
    async def test_batch_classification(self, make_llm, classification_json):
        llm = make_llm([classification_json])
        classifier = EmailClassifier(llm)

        results = await classifier.batch([{"subject": str(i), "body": "b"} for i in range(3)])

        assert len(results) == 3
        assert all(r.category is CategoryEnum.BOOKING for r in results)

    @pytest.mark.asyncio
    async def test_batch_emails_never_share_history(self, make_llm, classification_json):
        llm = make_llm([classification_json], keep_history=True)
        classifier = EmailClassifier(llm)

        await classifier.batch([{"subject": "first", "body": "b"}, {"subject": "second", "body": "b"}])

        assert [len(messages) for _, messages, _ in llm.calls] == [1, 1]
        assert all(system for system, _, _ in llm.calls)

    @pytest.mark.asyncio
    async def test_observers_see_pipeline_steps(self, make_llm, classification_json, recorder):
        llm = make_llm([classification_json])

        await EmailClassifier(llm).invoke({"subject": "s", "body": "b"}, {"callbacks": [recorder]})

        names = {name for _, name, _ in recorder.events}
        assert {"EmailClassifier", "TemplatePrompt", "FakeLLM", "JsonOutputParser", "to_classification"} <= names


class TestClassificationHelpers:
    def test_to_classification_accepts_snake_case(self):
        result = to_classification({
            "advert": True,
            "category": "other",
            "priority": "low",
            "sentiment": "neutral",
            "suggested_action": "Ignore",
        })

        assert result.advert is True
        assert result.extracted_info.guest_name is None

    def test_to_classification_confidence_bounds(self, valid_classification_data):
        valid_classification_data["confidence"] = 1.5

        with pytest.raises(OutputParserError):
            to_classification(valid_classification_data)

    def test_email_to_classifier_input_prefers_text(self, sample_email_record):
        assert email_to_classifier_input(sample_email_record) == {
            "subject": "Booking request for March",
            "body": sample_email_record.text,
        }

    def test_email_to_classifier_input_falls_back_to_html(self, sample_email_record):
        record = sample_email_record.model_copy(update={"text": "", "html": "<p>Hi</p>"})
        assert email_to_classifier_input(record)["body"] == "<p>Hi</p>"


@pytest.mark.asyncio
async def test_to_messages_step(make_llm):
    step = EmailClassifier(make_llm()).to_messages()

    messages = await step.invoke("rendered prompt")

    assert step.name == "to_messages"
    assert isinstance(messages[0], SystemMessage)
    assert messages[0].content == EmailClassifier.system_prompt
    assert messages[1].content == "rendered prompt"
