"""
End-to-end tests for the proxy route with a mocked upstream session.
"""
import unittest
from unittest.mock import Mock, patch
import sys
import os

import requests
from requests.structures import CaseInsensitiveDict
from urllib3 import HTTPHeaderDict

# Add parent directory to path to import app modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from unblocker import create_app
from unblocker.features.proxy.services.meta_robots import META_ROBOTS_TAG


def make_upstream_response(status=200, headers=(), chunks=(b'',)):
    """Build a stand-in for a streamed requests.Response."""
    resp = Mock()
    resp.status_code = status
    raw_headers = HTTPHeaderDict()
    for name, value in headers:
        raw_headers.add(name, value)
    resp.raw.headers = raw_headers
    resp.headers = CaseInsensitiveDict(dict(headers))
    resp.iter_content.return_value = iter(chunks)
    return resp


class TestProxyRoutes(unittest.TestCase):
    """Requests under the prefix are forwarded and rewritten."""

    def setUp(self):
        """Set up test fixtures."""
        self.app = create_app({'PROXY_PREFIX': '/proxy/', 'TESTING': True})
        self.app_context = self.app.app_context()
        self.app_context.push()
        # The route reads the Cookie header itself; keep the test client's jar out of it
        self.client = self.app.test_client(use_cookies=False)

        self.session_patcher = patch('unblocker.features.proxy.routes._SESSION')
        self.session = self.session_patcher.start()

    def tearDown(self):
        """Clean up after tests."""
        self.session_patcher.stop()
        self.app_context.pop()

    def test_set_cookie_path_end_to_end(self):
        self.session.request.return_value = make_upstream_response(
            headers=[('Content-Type', 'text/plain'), ('Set-Cookie', 'id=42; Path=/app')],
            chunks=[b'ok'],
        )

        resp = self.client.get('/proxy/http://site.com/page.html')

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers.getlist('Set-Cookie'), ['id=42; Path=/proxy/http://site.com/app'])
        self.assertEqual(resp.data, b'ok')
        kwargs = self.session.request.call_args.kwargs
        self.assertEqual(kwargs['url'], 'http://site.com/page.html')
        self.assertFalse(kwargs['allow_redirects'])

    def test_html_body_gets_meta_tag_and_hand_off_links(self):
        self.session.request.return_value = make_upstream_response(
            headers=[('Content-Type', 'text/html; charset=utf-8')],
            chunks=[
                b'<html><head><title>caf\xc3',
                b'\xa9</title></head><body>',
                b'<a href="/proxy/http://www.site.com/x">x</a><a href="/proxy/http://site.com/y">y</a></body></html>',
            ],
        )

        resp = self.client.get('/proxy/http://site.com/page.html')
        body = resp.data.decode('utf-8')

        self.assertEqual(body.count(META_ROBOTS_TAG), 1)
        self.assertIn('café', body)
        self.assertIn('href="/proxy/http://site.com/x?__proxy_cookies_to=http%3A%2F%2Fwww.site.com%2Fx"', body)
        self.assertIn('href="/proxy/http://site.com/y"', body)

    def test_meta_tag_can_be_disabled(self):
        app = create_app({'PROXY_PREFIX': '/proxy/', 'PROXY_META_ROBOTS': '0'})
        self.session.request.return_value = make_upstream_response(
            headers=[('Content-Type', 'text/html')],
            chunks=[b'<html><head></head></html>'],
        )

        resp = app.test_client(use_cookies=False).get('/proxy/http://site.com/')

        self.assertEqual(resp.data, b'<html><head></head></html>')

    def test_css_links_rewritten_without_meta_tag(self):
        self.session.request.return_value = make_upstream_response(
            headers=[('Content-Type', 'text/css')],
            chunks=[b'<head> a { background: url(/proxy/https://cdn.site.com/a.png) }'],
        )

        body = self.client.get('/proxy/http://site.com/style.css').data.decode('utf-8')

        self.assertNotIn(META_ROBOTS_TAG, body)
        self.assertIn('url(/proxy/http://site.com/a.png?__proxy_cookies_to=https%3A%2F%2Fcdn.site.com%2Fa.png)', body)

    def test_binary_body_passes_through_untouched(self):
        payload = b'\x89PNG\r\n<head>/proxy/https://www.site.com/\xff\xfe'
        self.session.request.return_value = make_upstream_response(
            headers=[('Content-Type', 'image/png')],
            chunks=[payload],
        )

        resp = self.client.get('/proxy/http://site.com/logo.png')

        self.assertEqual(resp.data, payload)

    def test_hand_off_param_short_circuits(self):
        resp = self.client.get(
            '/proxy/http://example.com/cart?__proxy_cookies_to=https%3A%2F%2Fwww.example.com%2Fcart',
            headers={'Cookie': 'sid=abc'},
        )

        self.assertEqual(resp.status_code, 307)
        self.assertTrue(resp.headers['Location'].endswith('/proxy/https://www.example.com/cart'))
        self.assertEqual(resp.headers.getlist('Set-Cookie'), ['sid=abc; Path=/proxy/https://www.example.com/'])
        self.session.request.assert_not_called()

    def test_redirect_within_site_carries_cookies(self):
        self.session.request.return_value = make_upstream_response(
            status=302,
            headers=[('Location', 'https://b.example.com/y'), ('Set-Cookie', 'theme=light; Path=/')],
        )

        resp = self.client.get('/proxy/http://a.example.com/x', headers={'Cookie': 'sid=abc; theme=dark'})

        self.assertEqual(resp.status_code, 302)
        self.assertTrue(resp.headers['Location'].endswith('/proxy/https://b.example.com/y'))
        self.assertEqual(resp.headers.getlist('Set-Cookie'), [
            'theme=light; Path=/proxy/https://b.example.com/',
            'sid=abc; Path=/proxy/https://b.example.com/',
        ])
        self.assertEqual(self.session.request.call_args.kwargs['headers'].get('Cookie'), 'sid=abc; theme=dark')

    def test_redirect_to_other_site_carries_nothing(self):
        self.session.request.return_value = make_upstream_response(
            status=302,
            headers=[('Location', 'https://evil.org/y')],
        )

        resp = self.client.get('/proxy/http://a.example.com/x', headers={'Cookie': 'sid=abc'})

        self.assertTrue(resp.headers['Location'].endswith('/proxy/https://evil.org/y'))
        self.assertEqual(resp.headers.getlist('Set-Cookie'), [])

    def test_relative_location_is_resolved(self):
        self.session.request.return_value = make_upstream_response(
            status=301,
            headers=[('Location', '/login')],
        )

        resp = self.client.get('/proxy/https://site.com/account/')

        self.assertTrue(resp.headers['Location'].endswith('/proxy/https://site.com/login'))

    def test_upstream_response_closed_when_headers_fail(self):
        upstream = make_upstream_response(status=302, headers=[('Location', 'http://[::1')])
        self.session.request.return_value = upstream

        resp = self.client.get('/proxy/http://site.com/old')

        self.assertEqual(resp.status_code, 400)
        upstream.close.assert_called_once()

    def test_upstream_response_closed_after_streaming(self):
        upstream = make_upstream_response(headers=[('Content-Type', 'text/plain')], chunks=[b'ok'])
        self.session.request.return_value = upstream

        resp = self.client.get('/proxy/http://site.com/')

        self.assertEqual(resp.data, b'ok')
        upstream.close.assert_called_once()

    def test_trace_param_is_not_forwarded(self):
        self.session.request.return_value = make_upstream_response(headers=[('Content-Type', 'text/plain')])

        self.client.get('/proxy/http://site.com/a?x=1&__proxy_trace=1')

        self.assertEqual(self.session.request.call_args.kwargs['url'], 'http://site.com/a?x=1')

    def test_collapsed_scheme_slashes_are_repaired(self):
        self.session.request.return_value = make_upstream_response(headers=[('Content-Type', 'text/plain')])

        self.client.get('/proxy/http:/site.com/a')

        self.assertEqual(self.session.request.call_args.kwargs['url'], 'http://site.com/a')

    def test_invalid_target_is_rejected(self):
        resp = self.client.get('/proxy/not-a-url')

        self.assertEqual(resp.status_code, 400)
        self.session.request.assert_not_called()

    def test_connection_error_maps_to_502(self):
        self.session.request.side_effect = requests.exceptions.ConnectionError('refused')

        resp = self.client.get('/proxy/http://site.com/')

        self.assertEqual(resp.status_code, 502)

    def test_timeout_maps_to_504(self):
        self.session.request.side_effect = requests.exceptions.Timeout('slow')

        resp = self.client.get('/proxy/http://site.com/')

        self.assertEqual(resp.status_code, 504)


if __name__ == '__main__':
    unittest.main()
