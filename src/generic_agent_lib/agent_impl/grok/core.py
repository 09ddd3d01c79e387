from typing import Any, Dict, List, Optional, Sequence, Type

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import BaseModel

from generic_agent_lib.agent_core import get_logger
from generic_agent_lib.agent_core.base import (
    AgentResponse,
    GenerationConfig,
    PromptInput,
    ResponseMeta,
    TokenCallback,
    Usage,
    config_to_dict,
)
from generic_agent_lib.agent_core.exceptions import ProviderAuthError, ProviderConnectionError, ProviderError
from generic_agent_lib.agent_core.tools import ToolDefinition
from generic_agent_lib.agent_core.utils import image_markdown
from ..openai_api import OpenAIProvider

logger = get_logger(__name__)

GROK_BASE_URL = "https://api.x.ai/v1"


class GrokProvider(OpenAIProvider):
    """
    Adapter for xAI's Grok models.

    Chat models use the OpenAI-compatible chat completions endpoint. Models whose
    name contains ``imagine`` are routed to the image API instead: a plain image
    generation, or an image edit when ``reference_image`` or ``image_url`` is
    configured.
    """

    API_KEY_ENV = ("GROK_API_KEY", "XAI_API_KEY")
    BASE_URL = GROK_BASE_URL

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initializes the adapter.

        Args:
            model: The model identifier (e.g. 'grok-4' or 'grok-imagine-image').
            api_key: Optional API key. Falls back to GROK_API_KEY or XAI_API_KEY.
            client: Optional pre-built OpenAI client pointed at the xAI endpoint.
            http_client: Optional HTTP client used for image edits.
        """
        super().__init__(model, api_key=api_key, client=client)
        self._http_client = http_client

    @property
    def is_image_model(self) -> bool:
        return "imagine" in self.model

    async def generate(
        self,
        system: Optional[str],
        prompt: PromptInput,
        files: Optional[Sequence[str]],
        tools: Optional[Sequence[ToolDefinition]],
        config: Optional[GenerationConfig],
        output_schema: Optional[Type[BaseModel]],
        on_token: TokenCallback,
    ) -> AgentResponse:
        if not self.is_image_model:
            return await super().generate(system, prompt, files, tools, config, output_schema, on_token)

        prompt_text = self._image_prompt(prompt)
        overrides = config_to_dict(config)
        reference = overrides.get("reference_image") or overrides.get("image_url")

        if reference:
            images = await self._edit_image(prompt_text, reference, overrides)
        else:
            images = await self._generate_image(prompt_text, overrides)

        content = self._images_to_markdown(images)
        on_token(content)

        return AgentResponse(content=content, usage=Usage(), meta=ResponseMeta(model=self.model))

    def _image_prompt(self, prompt: PromptInput) -> str:
        if isinstance(prompt, str):
            return prompt
        return "\n".join(self._stringify(msg.content) for msg in prompt if msg.role == "user")

    @staticmethod
    def _image_request(prompt_text: str, overrides: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "prompt": prompt_text,
            "n": overrides.get("n") or 1,
            "response_format": overrides.get("response_format") or "b64_json",
        }

    async def _generate_image(self, prompt_text: str, overrides: Dict[str, Any]) -> List[Dict[str, Any]]:
        request = self._image_request(prompt_text, overrides)
        if overrides.get("aspect_ratio"):
            request["extra_body"] = {"aspect_ratio": overrides["aspect_ratio"]}

        logger.debug(f"Generating {request['n']} image(s) with {self.model}")
        try:
            response = await self.client.images.generate(model=self.model, **request)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise ProviderAuthError(f"Grok rejected the credentials: {e}") from e
        except openai.APIConnectionError as e:
            raise ProviderConnectionError(f"Could not reach Grok: {e}") from e

        return [image.model_dump() for image in response.data or []]

    async def _edit_image(self, prompt_text: str, reference: str, overrides: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Edits a reference image.

        The xAI edit endpoint takes a JSON body, while the OpenAI SDK sends
        multipart form data, so the request is made directly.

        Raises:
            ProviderError: If the endpoint answers with an error status.
        """
        body = {"model": self.model, "image_url": reference, **self._image_request(prompt_text, overrides)}
        if overrides.get("aspect_ratio"):
            body["aspect_ratio"] = overrides["aspect_ratio"]

        logger.debug(f"Editing image with {self.model}")
        headers = {"Authorization": f"Bearer {self.client.api_key}"}
        client = self._http_client or httpx.AsyncClient(timeout=120.0)
        try:
            response = await client.post(f"{GROK_BASE_URL}/images/edits", json=body, headers=headers)
        except httpx.TransportError as e:
            raise ProviderConnectionError(f"Could not reach Grok: {e}") from e
        finally:
            if self._http_client is None:
                await client.aclose()

        if response.status_code in (401, 403):
            raise ProviderAuthError(f"Grok rejected the credentials: {response.text}")
        if response.is_error:
            raise ProviderError(f"Request failed with status {response.status_code}: {response.text}")

        return response.json().get("data", [])

    @staticmethod
    def _images_to_markdown(images: List[Dict[str, Any]]) -> str:
        parts = []
        for position, image in enumerate(images, start=1):
            label = f"Generated Image {position}" if len(images) > 1 else "Generated Image"
            if image.get("b64_json"):
                parts.append(image_markdown("image/png", image["b64_json"], label=label))
            else:
                parts.append(f"![{label}]({image.get('url')})")
        return "\n\n".join(parts)
