import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from freedom_api import Client, Config, Environment

ENTRYPOINT = "https://freedom.test/api/"


def link(path: str) -> Dict[str, str]:
    return {"href": ENTRYPOINT + path}


def satellite_json(sat_id: int, name: Optional[str] = None) -> Dict[str, Any]:
    return {
        "name": name or f"Sat {sat_id}",
        "description": "test satellite",
        "noradCatId": 40000 + sat_id,
        "_links": {"self": link(f"satellites/{sat_id}")},
    }


def task_request_json(request_id: int, **links: str) -> Dict[str, Any]:
    return {
        "type": "EXACT",
        "targetDate": "2024-03-01T12:00:00Z",
        "duration": 300,
        "status": "SCHEDULED",
        "_links": {
            "self": link(f"requests/{request_id}"),
            **{relation: link(path) for relation, path in links.items()},
        },
    }


def json_response(request: httpx.Request, payload: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, content=json.dumps(payload).encode(), request=request)


@pytest.fixture
def config() -> Config:
    return Config(environment=Environment.TEST, key="foo", secret="bar", entrypoint=ENTRYPOINT)


@pytest.fixture
def requests() -> List[httpx.Request]:
    """Every request that reached the mock transport, in order."""
    return []


@pytest.fixture
def make_client(config: Config, requests: List[httpx.Request]) -> Callable[..., Client]:
    def factory(handler: Callable[[httpx.Request], Any], **kwargs: Any) -> Client:
        async def recording(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            result = handler(request)
            if hasattr(result, "__await__"):
                result = await result
            return result

        return Client(config, transport=httpx.MockTransport(recording), **kwargs)

    return factory
