from typing import AsyncIterator, Dict, List, Optional
from src.config.settings import settings
from src.core.models.events import (
    DeltaEvent,
    DoneEvent,
    ErrorEvent,
    LinksEvent,
    MessageEvent,
    StreamEvent,
)
from src.core.services.link_validator import LinkValidator
from src.core.services.llm_provider import LLMProvider
from src.core.services.prompt import PromptBuilder
from src.core.services.recovery import ResponseRecovery
from src.utils.errors import InvalidRequestError
from src.utils.logging import logger

class ChatService:
    """Relays one conversation to the provider and post-processes the reply.

    Each call to ``stream_reply`` owns its own ``ResponseRecovery``; the
    service itself holds no per-request state.
    """

    def __init__(
        self,
        prompt_builder: PromptBuilder,
        provider: LLMProvider,
        validator: LinkValidator,
        cfg=settings
    ):
        self.prompt_builder = prompt_builder
        self.provider = provider
        self.validator = validator
        self._settings = cfg

    def available_models(self) -> List[str]:
        return self._settings.supported_models_list

    def default_model(self) -> Optional[str]:
        return self._settings.default_model or None

    def check_model(self, model: str):
        supported = self.available_models()
        if supported and model not in supported:
            raise InvalidRequestError(f'Model "{model}" is not in the list of supported models.')

    async def stream_reply(
        self,
        model: str,
        messages: List[Dict[str, str]],
        mode: Optional[str] = "chat"
    ) -> AsyncIterator[StreamEvent]:
        """Yield deltas as they arrive, then the recovered message, links and done.

        A provider error is yielded as the last event; no recovery is
        attempted on a failed stream.
        """
        self.check_model(model)
        system_prompt = await self.prompt_builder.build_system_prompt()
        logger.info(f"Relaying {len(messages)} messages to {model} (mode={mode})")

        recovery = ResponseRecovery()
        upstream = self.provider.stream_completion(
            model,
            [{"role": "system", "content": system_prompt}, *messages],
        )
        try:
            async for event in upstream:
                if isinstance(event, DeltaEvent):
                    yield recovery.push(event.text)
                elif isinstance(event, ErrorEvent):
                    yield event
                    return
                elif isinstance(event, DoneEvent):
                    break
        finally:
            await upstream.aclose()

        reply = recovery.recover()
        if reply.message is not None:
            yield MessageEvent(text=reply.message)
        if reply.candidates:
            links = await self.validator.validate(reply.candidates)
            if links:
                yield LinksEvent(links=links)
        yield DoneEvent()
