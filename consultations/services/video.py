"""Daily.co video-room bridge."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Protocol

import httpx

from consultations.core.errors import BridgeFailure, RoomProvisioningFailed

logger = logging.getLogger(__name__)

DEFAULT_ROOM_LIFETIME = timedelta(hours=2)


@dataclass(frozen=True)
class RoomConfig:
    max_participants: int = 2
    enable_chat: bool = True
    enable_screenshare: bool = True
    enable_recording: str = 'cloud'
    start_video_off: bool = False
    start_audio_off: bool = False
    lang: str = 'en'


@dataclass(frozen=True)
class RoomInfo:
    name: str
    url: str
    config: dict[str, Any] = field(default_factory=dict)


class VideoBridge(Protocol):
    def create_room(self, name: str, expires_at: datetime | None, config: RoomConfig) -> RoomInfo: ...

    def delete_room(self, name: str) -> None: ...

    def issue_token(self, room_name: str, display_name: str, elevated: bool) -> str: ...


def room_name_for(appointment_id: int) -> str:
    return f'consultation-{appointment_id}'


class DailyVideoBridge:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = 'https://api.daily.co/v1',
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.client = httpx.Client(
            base_url=base_url,
            headers={'Authorization': f'Bearer {api_key}', 'Content-Type': 'application/json'},
            timeout=timeout,
            transport=transport,
        )

    def create_room(self, name: str, expires_at: datetime | None, config: RoomConfig) -> RoomInfo:
        expires_at = expires_at or datetime.now() + DEFAULT_ROOM_LIFETIME
        payload = {
            'name': name,
            'properties': {
                'start_video_off': config.start_video_off,
                'start_audio_off': config.start_audio_off,
                'exp': int(expires_at.timestamp()),
                'enable_chat': config.enable_chat,
                'enable_screenshare': config.enable_screenshare,
                'enable_recording': config.enable_recording,
                'max_participants': config.max_participants,
                'lang': config.lang,
            },
        }
        try:
            response = self.client.post('/rooms', json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error('Failed to create Daily.co room %s: %s', name, exc)
            raise RoomProvisioningFailed() from exc

        data = response.json()
        logger.info('Daily.co room created: %s', data.get('name', name))
        return RoomInfo(name=data.get('name', name), url=data['url'], config=data.get('config') or {})

    def delete_room(self, name: str) -> None:
        try:
            response = self.client.delete(f'/rooms/{name}')
            if response.status_code == 404:
                logger.info('Daily.co room %s already gone', name)
                return
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise BridgeFailure(f'Failed to delete room {name}.') from exc
        logger.info('Daily.co room deleted: %s', name)

    def issue_token(self, room_name: str, display_name: str, elevated: bool) -> str:
        payload = {
            'properties': {
                'room_name': room_name,
                'user_name': display_name,
                'is_owner': elevated,
                'start_video_off': False,
                'start_audio_off': False,
                'enable_recording': 'cloud' if elevated else False,
            },
        }
        try:
            response = self.client.post('/meeting-tokens', json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error('Failed to create meeting token for %s: %s', room_name, exc)
            raise BridgeFailure('Failed to create meeting access token.') from exc
        return response.json()['token']
