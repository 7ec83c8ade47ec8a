"""Interactive JSON schema generation.

The model drafts a ``{name, description, schema}`` object, a reviewer accepts
it or asks for changes, and the loop refines the draft until the reviewer is
satisfied or `max_iterations` drafts have been produced.
"""

from __future__ import annotations

import datetime
import json
import pprint
from typing import Any, Mapping, Optional

from llmhelper import logger as logger_mod

from . import prompting
from .base import ProviderConfig
from .errors import ConfigurationError, LLMError, SchemaGenerationError
from .prompting import LLMFeedback, Prompt, llm_feedback
from .review import ConsoleFeedbackPresenter, FeedbackPresenter, print_schema_preview
from .types import (
    ConversationState,
    FeedbackAction,
    SchemaDraft,
    SchemaResult,
    SchemaType,
)

log = logger_mod.get_logger()

_REQUIRED_COMPONENTS = ("name", "description", "schema")


def validate_schema_candidate(response: Any) -> Optional[LLMFeedback]:
    """Structural check of a drafted schema object; feedback on the first problem."""

    if not isinstance(response, dict):
        return llm_feedback(
            "The response must be a valid JSON object. Please provide a properly "
            "formatted schema structure."
        )

    missing = [c for c in _REQUIRED_COMPONENTS if c not in response]
    if missing:
        return llm_feedback(
            f"Missing required components: {', '.join(missing)}. Please include "
            "'name', 'description', and 'schema' in your response."
        )

    schema_obj = response["schema"]
    if not isinstance(schema_obj, dict):
        return llm_feedback(
            "The 'schema' component must be a valid object. Please provide a proper "
            "schema structure."
        )

    if "type" not in schema_obj:
        return llm_feedback(
            "The schema must include a 'type' property. Please add the appropriate type."
        )

    properties = schema_obj.get("properties")
    has_properties = isinstance(properties, dict) and bool(properties)
    if schema_obj["type"] == "object" and not has_properties:
        return llm_feedback(
            "Object type schemas should include 'properties'. Please add relevant "
            "properties to the schema."
        )

    for field_name, hint in (
        ("name", "a descriptive name"),
        ("description", "a clear description"),
    ):
        value = response[field_name]
        if not isinstance(value, str) or not value.strip():
            return llm_feedback(
                f"The '{field_name}' field must be a non-empty string. "
                f"Please provide {hint}."
            )

    return None


# --- Prompts ---


def create_schema_prompt(state: ConversationState) -> Prompt:
    system_prompt = (
        "You are a JSON schema expert. Your task is to generate schemas as a JSON "
        "object with 'name', 'description', and 'schema' components. "
        "Focus on being precise and comprehensive."
    )
    example = {
        "name": "descriptive_name_for_schema",
        "description": "Clear description of what this schema represents",
        "schema": {
            "type": "object",
            "properties": {
                "PropertyName1": {
                    "type": "string",
                    "description": "Description of this property",
                },
                "PropertyName2": {
                    "type": "string",
                    "description": "Description of this property",
                },
            },
            "required": ["PropertyName1", "PropertyName2"],
            "additionalProperties": False,
        },
    }
    user_prompt = "\n".join(
        [
            "Generate a JSON schema structure for the following description:",
            f"Description: {state.description}",
            "",
            "Return a JSON object with exactly this structure:",
            json.dumps(example, indent=2),
            "",
            "Requirements:",
            "1. 'name' should be a concise identifier (snake_case)",
            "2. 'description' should explain the schema's purpose",
            "3. 'schema' should contain proper JSON schema with type, properties, required fields",
            "4. Use meaningful property names relevant to the description",
            "5. Set 'additionalProperties' to false for strict validation",
            "",
            "Return only the JSON object.",
        ]
    )
    return prompting.set_prompt(system=system_prompt, user=user_prompt)


def create_refinement_prompt(state: ConversationState) -> Prompt:
    system_prompt = (
        "You are a JSON schema expert helping to refine an existing schema structure. "
        "Maintain the required format with 'name', 'description', and 'schema' "
        "components. Carefully consider the user's feedback and modify accordingly."
    )
    user_prompt = "\n".join(
        [
            "Here is the current schema structure:",
            "```json",
            json.dumps(state.current_schema, indent=2),
            "```",
            "",
            f"User feedback: {state.user_feedback}",
            "",
            "Please modify the schema based on this feedback while maintaining the exact format:",
            "- Keep the 'name', 'description', and 'schema' structure",
            "- Update relevant parts based on feedback",
            "- Ensure 'schema' contains proper JSON schema format",
            "",
            "Return the updated complete JSON object.",
        ]
    )
    return prompting.set_prompt(system=system_prompt, user=user_prompt)


# --- Loop ---


def _draft(
    prompt: Prompt,
    llm_client: ProviderConfig,
    verbose: bool,
    max_interactions: int,
) -> Optional[dict[str, Any]]:
    validated = prompting.prompt_wrap(
        prompting.answer_as_json(prompt, type=SchemaType.AUTO),
        validation_fn=validate_schema_candidate,
        name="schema_validator",
    )
    try:
        return prompting.send_prompt(
            validated,
            llm_client,
            max_interactions=max_interactions,
            verbose=verbose,
        )
    except ConfigurationError:
        raise
    except LLMError as e:
        log.error(f"❌ Error generating schema: {e}")
        raise SchemaGenerationError(
            "Failed to generate schema. Please check your LLM provider and try again."
        ) from e


def get_user_feedback(
    state: ConversationState, presenter: FeedbackPresenter, verbose: bool = True
) -> ConversationState:
    """Ask the reviewer what to do with the current draft and update `state`."""

    say = log.info if verbose else log.debug
    while True:
        choice = presenter.present(state)
        text = (choice.text or "").strip()

        if choice.action is FeedbackAction.ACCEPT:
            state.satisfied = True
            say("✅ Great! Schema finalized.")
            return state

        if choice.action is FeedbackAction.MODIFY:
            if text:
                state.user_feedback = text
                say("ℹ️ Feedback recorded. Generating refined schema...")
            else:
                log.warning("⚠️ No feedback provided. Keeping current schema.")
                state.satisfied = True
            return state

        if choice.action is FeedbackAction.INSPECT:
            presenter.show(json.dumps(state.current_schema, indent=2), "json")
            continue

        if choice.action is FeedbackAction.SHOW_CODE:
            presenter.show(format_as_python_code(state.current_schema), "python")
            continue

        if choice.action is FeedbackAction.RESTART:
            if not text:
                log.warning("⚠️ No new description provided.")
                continue
            state.description = text
            state.user_feedback = None
            state.current_schema = None
            state.iteration = 1
            state.satisfied = False
            say("🔄 Starting over with new description...")
            return state

        log.warning(f"⚠️ Invalid choice {choice.action!r}. Please try again.")


def generate_json_schema(
    description: str,
    llm_client: ProviderConfig,
    max_iterations: int = 5,
    interactive: bool = True,
    verbose: bool = True,
    presenter: Optional[FeedbackPresenter] = None,
    max_interactions: int = 10,
) -> SchemaResult:
    """Draft and refine a JSON schema from a free-text description.

    Each draft must pass `validate_schema_candidate`; rejected drafts are sent
    back to the model with feedback, up to `max_interactions` exchanges per
    draft. In interactive mode `presenter` (a terminal menu by default)
    decides whether to accept, refine, inspect or restart. Otherwise the
    first valid draft is accepted.

    Running out of iterations is not an error: the last draft is returned
    with ``satisfied=False``.
    """

    if not isinstance(description, str) or not description.strip():
        raise ConfigurationError("description must be a non-empty string")
    if isinstance(max_iterations, bool) or not isinstance(max_iterations, int):
        raise ConfigurationError("max_iterations must be a positive integer")
    if max_iterations < 1:
        raise ConfigurationError("max_iterations must be a positive integer")

    say = log.info if verbose else log.debug
    if interactive and presenter is None:
        presenter = ConsoleFeedbackPresenter()

    state = ConversationState(description=description)
    prompt = create_schema_prompt(state)
    say(f"ℹ️ Starting JSON schema generation: {description}")

    while not state.satisfied and state.iteration <= max_iterations:
        say(f"🔄 Iteration {state.iteration}")

        schema = _draft(prompt, llm_client, verbose, max_interactions)
        if schema is None:
            log.warning(
                "⚠️ The model did not produce a valid schema within "
                f"{max_interactions} interaction(s); stopping."
            )
            break

        state.current_schema = schema
        state.history.append(
            SchemaDraft(
                iteration=state.iteration,
                prompt=prompt.construct_prompt_text(),
                schema=schema,
                timestamp=datetime.datetime.now(),
            )
        )
        say("✅ Schema generated successfully!")
        if verbose:
            print_schema_preview(schema)

        if interactive:
            get_user_feedback(state, presenter, verbose)
        else:
            state.satisfied = True

        if state.satisfied:
            break

        if state.current_schema is None:
            prompt = create_schema_prompt(state)
        else:
            prompt = create_refinement_prompt(state)
            state.iteration += 1

    if state.satisfied:
        say("✅ Schema generation completed successfully!")
        iterations = state.iteration
    else:
        log.warning(
            "⚠️ Schema negotiation ended without acceptance. You can continue "
            "with the current schema."
        )
        iterations = state.iteration - 1

    return SchemaResult(
        schema=state.current_schema,
        description=state.description,
        iterations=iterations,
        history=list(state.history),
        satisfied=state.satisfied,
    )


# --- Schema object helpers ---


def extract_schema_only(schema_result: Any) -> Any:
    """Unwrap one level: return ``obj["schema"]`` when present, else `obj`.

    Only one level is removed. ``{"name": ..., "schema": {"type": "object"}}``
    yields ``{"type": "object"}``; a `SchemaResult` yields its schema object.
    """

    if isinstance(schema_result, SchemaResult):
        return schema_result.schema
    if isinstance(schema_result, Mapping) and "schema" in schema_result:
        return schema_result["schema"]
    return schema_result


def format_as_python_code(schema_result: Any, variable_name: str = "json_schema") -> str:
    """Format a schema object as a Python assignment."""
    body = pprint.pformat(schema_result, width=80, sort_dicts=False)
    return f"{variable_name} = {body}"
