"""
通知模块单元测试
"""

import json

import httpx

from padelnight.infra.notifier import LoggingNotifier, WebhookNotifier, build_notifier

EVENT = {'id': 'evt_1', 'title': 'Tuesday Night', 'date': '2026-10-20T20:00:00', 'state': 'DRAWN'}


def make_notifier(handler, **kwargs):
    kwargs.setdefault('retry_delay', 0)
    return WebhookNotifier(
        webhook_url='https://hooks.test/padel',
        transport=httpx.MockTransport(handler),
        **kwargs
    )


class TestWebhookNotifier:
    """WebhookNotifier测试类"""

    def test_announce_draw_payload(self):
        """测试抽签通知的请求内容"""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={'ok': True})

        notifier = make_notifier(handler, api_key='secret')
        notifier.announce_draw(['a@test.com', 'b@test.com'], EVENT)

        assert len(requests) == 1
        body = json.loads(requests[0].content)
        assert body['type'] == 'draw_generated'
        assert body['recipients'] == ['a@test.com', 'b@test.com']
        assert body['event']['id'] == 'evt_1'
        assert requests[0].headers['Authorization'] == 'Bearer secret'

    def test_waitlisted_payload(self):
        """测试候补通知携带球员姓名与候补编号"""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200)

        make_notifier(handler).rsvp_waitlisted('p3@test.com', 'Player 3', EVENT, 2)

        body = json.loads(requests[0].content)
        assert body['type'] == 'rsvp_waitlisted'
        assert body['recipients'] == ['p3@test.com']
        assert body['details'] == {'name': 'Player 3', 'position': 2}

    def test_retry_on_server_error(self):
        """测试服务器错误时重试后成功"""
        responses = iter([httpx.Response(503), httpx.Response(200)])
        calls = []

        def handler(request):
            calls.append(request)
            return next(responses)

        assert make_notifier(handler)._send('results_published', [], EVENT) is True
        assert len(calls) == 2

    def test_failure_is_swallowed(self):
        """测试重试耗尽后只记录日志，不抛出异常"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        notifier = make_notifier(handler, max_retries=3)

        notifier.results_published(['a@test.com'], EVENT)
        assert len(calls) == 3
        assert notifier._send('results_published', [], EVENT) is False

    def test_client_error_not_retried(self):
        """测试4xx错误不重试"""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, text='bad request')

        assert make_notifier(handler)._send('draw_generated', [], EVENT) is False
        assert len(calls) == 1

    def test_network_error_swallowed(self):
        """测试网络异常重试后放弃"""
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError('connection refused', request=request)

        assert make_notifier(handler, max_retries=2)._send('draw_generated', [], EVENT) is False
        assert len(calls) == 2


def test_build_notifier():
    """测试根据配置选择通知实现"""
    assert isinstance(build_notifier(None), LoggingNotifier)
    assert isinstance(build_notifier({'enabled': False, 'webhook_url': 'https://x'}), LoggingNotifier)

    notifier = build_notifier({'enabled': True, 'webhook_url': 'https://hooks.test/padel', 'max_retries': 5})
    assert isinstance(notifier, WebhookNotifier)
    assert notifier.max_retries == 5
    notifier.close()
