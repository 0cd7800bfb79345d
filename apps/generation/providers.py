# apps/generation/providers.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import requests
from django.conf import settings

from core.exceptions import ProviderError

IMAGE_KEYS = ('image_url', 'imageUrl', 'imageurl')
VIDEO_KEYS = ('video_url', 'videoUrl')
IMAGE_LIST_KEYS = ('images', 'image_urls')


@dataclass
class GenerationRequest:
    kind: str
    payload: Dict[str, Any]
    project_ref: str = ''


@dataclass
class GenerationOutput:
    provider: str
    content: Dict[str, Any]
    media: List[Tuple[str, str]] = field(default_factory=list)  # (url, media_type)


def _is_remote_url(value):
    return isinstance(value, str) and value.startswith(('http://', 'https://'))


def extract_media_urls(content):
    """Collect externally hosted image/video URLs referenced anywhere in a
    provider response, in order of appearance and without duplicates."""
    found = []
    seen = set()

    def add(url, media_type):
        if _is_remote_url(url) and url not in seen:
            seen.add(url)
            found.append((url, media_type))

    def walk(node):
        if isinstance(node, dict):
            for key, value in node.items():
                if key in IMAGE_KEYS:
                    add(value, 'image')
                elif key in VIDEO_KEYS:
                    add(value, 'video')
                elif key in IMAGE_LIST_KEYS and isinstance(value, list):
                    for item in value:
                        if isinstance(item, str):
                            add(item, 'image')
                        else:
                            walk(item)
                else:
                    walk(value)
        elif isinstance(node, list):
            for item in node:
                walk(item)

    walk(content)
    return found


class BaseGenerationProvider(ABC):
    name = 'base'

    @abstractmethod
    def generate(self, request: GenerationRequest) -> GenerationOutput:
        pass


class HttpGenerationProvider(BaseGenerationProvider):
    """Calls a JSON-over-HTTP generation service.

    The service receives ``{"kind", "payload", "project_ref"}`` and answers
    with ``{"content": {...}}``.
    """

    name = 'http'

    def __init__(self, url=None, api_key=None, timeout=None, session=None):
        self.url = url or settings.GENERATION_PROVIDER_URL
        self.api_key = api_key if api_key is not None else settings.GENERATION_PROVIDER_API_KEY
        self.timeout = timeout or settings.REMOTE_REQUEST_TIMEOUT
        self.session = session or requests.Session()

    def generate(self, request: GenerationRequest) -> GenerationOutput:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'

        try:
            response = self.session.post(
                self.url,
                json={
                    'kind': request.kind,
                    'payload': request.payload,
                    'project_ref': request.project_ref,
                },
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderError(f"Generation provider unreachable: {exc}") from exc

        if not response.ok:
            raise ProviderError(
                f"Generation provider returned {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(
                "Generation provider returned a non-JSON body",
                status_code=response.status_code,
            ) from exc

        content = data.get('content', data) if isinstance(data, dict) else {'result': data}
        return GenerationOutput(
            provider=self.name,
            content=content,
            media=extract_media_urls(content),
        )


def get_default_provider():
    return HttpGenerationProvider()
