"""
AI Assistant

Prompt templates plus an OpenAI-compatible chat client via urllib.

Everything the model returns is advisory text for a human to read.
Nothing in this module writes to a tree; callers that want to apply a
suggestion go through the engine like any other edit.
"""

import json
import logging
import os
import re
import urllib.error
import urllib.request
from enum import Enum

from .tracker import ActiveFileTracker

logger = logging.getLogger(__name__)


class AiFeature(Enum):
    EXPLAIN = "explain"
    REFACTOR = "refactor"
    DEBUG = "debug"
    DOCS = "docs"


PROMPT_TEMPLATES = {
    AiFeature.EXPLAIN: """\
You are an expert {language} developer and a skilled code explainer.
Explain the following code snippet in simple, clear terms.
Focus on its purpose, key logic, and how it works. Use markdown for formatting.

Code:
```{language}
{code}
```
""",
    AiFeature.REFACTOR: """\
You are an expert {language} developer specializing in code optimization and clean code.
Refactor the following code to improve readability, maintainability, and performance.
Keep the functionality identical. Provide the refactored code inside a markdown code block
and briefly explain the key changes you made.

Code to refactor:
```{language}
{code}
```
""",
    AiFeature.DEBUG: """\
You are a senior {language} developer with expert debugging skills.
Analyze this code for potential bugs, runtime errors, logic issues, or security vulnerabilities.
If you find any issues, describe them clearly and provide a corrected version of the code
inside a markdown code block. If no issues are found, state that the code looks solid.

Code to analyze:
```{language}
{code}
```
""",
    AiFeature.DOCS: """\
You are an expert technical writer and {language} developer.
Generate clear and concise documentation for the following code.
This could include a summary, descriptions of parameters, return values, and usage examples.
For functions, generate docstrings in a standard format for the language.
For classes, document the class and its public methods.

Code to document:
```{language}
{code}
```
""",
}

QUERY_PROMPT_TEMPLATE = """\
You are an expert AI assistant and {language} developer.
Based on the code context provided, answer the user's question. Format your response using markdown.

Code Context:
```{language}
{code}
```

User Question:
"{question}"
"""

COMPLETION_PROMPT_TEMPLATE = """\
You are an AI programming assistant specializing in {language}.
Complete the code snippet provided. Your response should be concise and contain only the code \
that should be inserted at the cursor position.
Do not include any explanations, markdown formatting, or the original code.

Here is the code before the cursor:
```{language}
{before}
```

Here is the code after the cursor:
```{language}
{after}
```

Provide only the code completion that should come next:
"""

_FENCE_OPEN = re.compile(r"^```(\w*\n)?")
_FENCE_CLOSE = re.compile(r"```$")


class InferenceError(Exception):
    """Raised when an inference API call fails."""
    pass


class InferenceClient:
    """Client for OpenAI-compatible chat completion APIs."""

    def __init__(self, api_url: str, api_key: str, model: str, timeout: float = 60):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def generate(self, prompt: str, temperature: float | None = None,
                 max_tokens: int | None = None) -> str:
        """Send a single-turn prompt and return the reply text."""
        url = f"{self.api_url}/chat/completions"
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            body["temperature"] = temperature
        if max_tokens is not None:
            body["max_tokens"] = max_tokens

        req = urllib.request.Request(
            url,
            data=json.dumps(body).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                data = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            raise InferenceError(f"Inference API returned HTTP {e.code}: {e.reason}") from e
        except urllib.error.URLError as e:
            raise InferenceError(f"Failed to connect to inference API at {url}: {e.reason}") from e
        except json.JSONDecodeError as e:
            raise InferenceError(f"Inference API returned invalid JSON: {e}") from e

        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise InferenceError(
                f"Inference API response missing choices[0].message.content: {e}"
            ) from e


def get_inference_client(config: dict) -> InferenceClient | None:
    """Create an InferenceClient from config, or None if not configured.

    The API key may come from config or the GROVE_API_KEY environment variable.
    """
    api_url = config.get("inference_api_url")
    api_key = config.get("inference_api_key") or os.environ.get("GROVE_API_KEY")
    model = config.get("inference_model")
    if not api_url or not api_key or not model:
        return None
    return InferenceClient(api_url, api_key, model)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```lang ... ``` wrapper from a completion."""
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text)).strip()


class Assistant:
    """
    Feature prompts, free-form questions and inline completion.

    Failures come back as readable text (or "" for completions) rather
    than exceptions, because the output is only ever shown to a person.
    """

    NOT_CONFIGURED = (
        "The AI assistant is not configured. Set inference_api_url, inference_model "
        "and inference_api_key (or GROVE_API_KEY)."
    )

    def __init__(self, client: InferenceClient | None, completion_max_tokens: int = 64):
        self.client = client
        self.completion_max_tokens = completion_max_tokens

    def run_task(self, feature: AiFeature, language: str, code: str) -> str:
        if not code.strip():
            return "Please select some code or have code in the active file to use this feature."
        prompt = PROMPT_TEMPLATES[feature].format(language=language, code=code)
        return self._ask(prompt, f"{feature.value} task")

    def run_query(self, language: str, code: str, question: str) -> str:
        if not code.strip():
            return "The active file is empty, so there's no context for your question."
        if not question.strip():
            return "Please enter a question."
        prompt = QUERY_PROMPT_TEMPLATE.format(language=language, code=code, question=question)
        return self._ask(prompt, "query")

    def complete(self, language: str, before: str, after: str) -> str:
        """Suggest text to insert between `before` and `after`. "" on any failure."""
        if not before.strip() or self.client is None:
            return ""
        prompt = COMPLETION_PROMPT_TEMPLATE.format(language=language, before=before, after=after)
        try:
            text = self.client.generate(
                prompt, temperature=0.2, max_tokens=self.completion_max_tokens
            )
        except InferenceError:
            logger.warning("Code completion failed", exc_info=True)
            return ""
        return strip_code_fences(text)

    def _ask(self, prompt: str, what: str) -> str:
        if self.client is None:
            return self.NOT_CONFIGURED
        try:
            return self.client.generate(prompt)
        except InferenceError as e:
            logger.warning("AI %s failed: %s", what, e, exc_info=True)
            return f"An error occurred: {e}"

    def run_for_active(
        self,
        tracker: ActiveFileTracker,
        feature: AiFeature | None = None,
        question: str | None = None,
        code: str | None = None,
    ) -> str | None:
        """
        Run a feature (or answer `question`) against the open file.

        `code` overrides the file content (e.g. a selection). Returns
        None when no file is open, or when the open file changed while
        the request was in flight.
        """
        active = tracker.file
        if active is None:
            return None
        token = tracker.token()
        source = active.content if code is None else code
        if feature is not None:
            result = self.run_task(feature, active.language, source)
        else:
            result = self.run_query(active.language, source, question or "")
        if not tracker.deliver(token, result):
            return None
        return result

    def complete_for_active(self, tracker: ActiveFileTracker, before: str, after: str) -> str | None:
        """
        Inline completion in the open file, split at the cursor.

        Returns None when no file is open, or when the open file changed
        while the request was in flight.
        """
        active = tracker.file
        if active is None:
            return None
        token = tracker.token()
        result = self.complete(active.language, before, after)
        if not tracker.deliver(token, result):
            return None
        return result
