"""
通知模块
抽签发布、成绩公布后通知参赛球员；通知失败只记录日志，不影响已提交的数据
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

import httpx

from padelnight.utils.logger import get_logger

logger = get_logger(__name__)


class Notifier(ABC):
    """通知接口: 即发即忘"""

    @abstractmethod
    def announce_draw(self, emails: Sequence[str], event: Dict[str, Any]) -> None:
        """抽签已生成"""
        pass

    @abstractmethod
    def results_published(self, emails: Sequence[str], event: Dict[str, Any]) -> None:
        """成绩与排名已公布"""
        pass

    @abstractmethod
    def rsvp_confirmed(self, email: str, name: str, event: Dict[str, Any]) -> None:
        """报名已确认"""
        pass

    @abstractmethod
    def rsvp_waitlisted(self, email: str, name: str, event: Dict[str, Any], position: int) -> None:
        """名额已满，进入候补"""
        pass

    @abstractmethod
    def waitlist_promoted(self, email: str, name: str, event: Dict[str, Any]) -> None:
        """候补转为确认"""
        pass


class LoggingNotifier(Notifier):
    """只写日志的通知实现（未配置 webhook 时使用）"""

    def announce_draw(self, emails: Sequence[str], event: Dict[str, Any]) -> None:
        logger.info(f"[通知] 赛事 {event.get('id')} 抽签已生成，收件人 {len(emails)} 位")

    def results_published(self, emails: Sequence[str], event: Dict[str, Any]) -> None:
        logger.info(f"[通知] 赛事 {event.get('id')} 成绩已公布，收件人 {len(emails)} 位")

    def rsvp_confirmed(self, email: str, name: str, event: Dict[str, Any]) -> None:
        logger.info(f"[通知] {name}: 赛事 {event.get('id')} 报名已确认")

    def rsvp_waitlisted(self, email: str, name: str, event: Dict[str, Any], position: int) -> None:
        logger.info(f"[通知] {name}: 赛事 {event.get('id')} 候补第 {position} 位")

    def waitlist_promoted(self, email: str, name: str, event: Dict[str, Any]) -> None:
        logger.info(f"[通知] {name}: 赛事 {event.get('id')} 候补已转为确认")


class WebhookNotifier(Notifier):
    """HTTP webhook 通知: 对限流、服务器错误和网络异常重试，最终失败只记录日志"""

    def __init__(
        self,
        webhook_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10,
        max_retries: int = 3,
        retry_delay: float = 1,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.api_key = api_key
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout, connect=5.0),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def announce_draw(self, emails: Sequence[str], event: Dict[str, Any]) -> None:
        self._send('draw_generated', emails, event)

    def results_published(self, emails: Sequence[str], event: Dict[str, Any]) -> None:
        self._send('results_published', emails, event)

    def rsvp_confirmed(self, email: str, name: str, event: Dict[str, Any]) -> None:
        self._send('rsvp_confirmed', [email], event, {'name': name})

    def rsvp_waitlisted(self, email: str, name: str, event: Dict[str, Any], position: int) -> None:
        self._send('rsvp_waitlisted', [email], event, {'name': name, 'position': position})

    def waitlist_promoted(self, email: str, name: str, event: Dict[str, Any]) -> None:
        self._send('waitlist_promoted', [email], event, {'name': name})

    def _send(
        self,
        kind: str,
        emails: Sequence[str],
        event: Dict[str, Any],
        details: Optional[Dict[str, Any]] = None
    ) -> bool:
        payload = {
            'type': kind,
            'recipients': list(emails),
            'event': {key: str(value) for key, value in event.items()},
        }
        if details:
            payload['details'] = details
        try:
            self._post(payload, context_name=f"通知[{kind}]")
            return True
        except (httpx.HTTPError, RuntimeError) as e:
            logger.error(f"通知发送失败，已忽略: {type(e).__name__} - {e}")
            return False

    def _post(self, payload: Dict[str, Any], context_name: str) -> None:
        """发送POST请求（带重试机制）"""
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'

        for attempt in range(self.max_retries):
            try:
                response = self._client.post(self.webhook_url, json=payload, headers=headers)
                status_code = response.status_code

                if status_code == 429 or status_code >= 500:
                    logger.warning(
                        f"{context_name}返回 {status_code}，第 {attempt + 1}/{self.max_retries} 次尝试"
                    )
                    if attempt < self.max_retries - 1:
                        time.sleep(self.retry_delay * (2 ** attempt))
                        continue
                    response.raise_for_status()

                if status_code >= 400:
                    logger.error(f"{context_name}请求失败 status={status_code}, body={response.text}")
                    response.raise_for_status()

                logger.debug(f"{context_name}发送成功: {payload['recipients']}")
                return

            except httpx.TransportError as e:
                logger.warning(
                    f'{context_name}网络异常 (尝试 {attempt + 1}/{self.max_retries}): '
                    f'{type(e).__name__} - {str(e)}'
                )
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay * (2 ** attempt))
                else:
                    raise

        raise RuntimeError(f"{context_name}失败，已重试 {self.max_retries} 次仍未成功")


def build_notifier(settings: Optional[Dict[str, Any]]) -> Notifier:
    """根据配置构建通知实现"""
    settings = settings or {}
    if settings.get('enabled') and settings.get('webhook_url'):
        return WebhookNotifier(
            webhook_url=settings['webhook_url'],
            api_key=settings.get('api_key'),
            timeout=settings.get('timeout', 10),
            max_retries=settings.get('max_retries', 3),
            retry_delay=settings.get('retry_delay', 1),
        )
    return LoggingNotifier()
