from pathlib import Path
from typing import Union

from langchain_core.prompts import PromptTemplate

from llm.providers import CompletionProvider


def render_prompt(template_path: Union[str, Path], params: dict) -> str:
    """
    Renders a Jinja2 prompt template file with the given parameters.

    Args:
        template_path: The absolute path to the Jinja2 template file.
        params: A dictionary of parameters to populate the template.

    Returns:
        The rendered prompt text.
    """
    with open(template_path, "r") as f:
        template_content = f.read()

    # Create a prompt template that treats the input as a Jinja2 template
    prompt = PromptTemplate.from_template(template_content, template_format="jinja2")
    return prompt.format(**params)


def get_llm_response(
    provider: CompletionProvider,
    template_path: Union[str, Path],
    params: dict,
    max_tokens: int,
) -> str:
    """
    Generates a response from the configured provider based on a Jinja2 template file.

    Args:
        provider: The completion provider to call.
        template_path: The absolute path to the Jinja2 template file.
        params: A dictionary of parameters to populate the template.
        max_tokens: Upper bound on the length of the completion.

    Returns:
        The string response from the LLM.

    Raises:
        CompletionError: if the provider fails or returns nothing.
    """
    return provider.complete(render_prompt(template_path, params), max_tokens)
