import asyncio
import json
import os
import sys
import tempfile
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

import httpx

from app.transport import HttpActionInvoker, HttpDataSource, HttpDownloadFrames, TransportError, make_client


MODEL = "com.example.sale.Order"


def _client(handler) -> httpx.AsyncClient:
    return make_client("http://erp.test/", transport=httpx.MockTransport(handler))


class TestHttpActionInvoker(unittest.IsolatedAsyncioTestCase):
    async def test_posts_action_envelope(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"status": 0, "data": [{"values": {"x": 1}}], "errors": {"name": "bad"}})

        async with _client(handler) as client:
            result = await HttpActionInvoker(client).invoke("action-order-confirm", MODEL, {"id": 1})
        self.assertEqual(seen["url"], "http://erp.test/ws/action")
        self.assertEqual(seen["body"], {"action": "action-order-confirm", "model": MODEL, "data": {"context": {"id": 1}}})
        self.assertEqual(result, {"data": [{"values": {"x": 1}}], "errors": {"name": "bad"}})

    async def test_missing_data_is_empty_chain(self) -> None:
        async with _client(lambda request: httpx.Response(200, json={"status": 0})) as client:
            result = await HttpActionInvoker(client).invoke("a", MODEL, {})
        self.assertEqual(result, {"data": [], "errors": None})

    async def test_error_status_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": -1, "data": {"message": "Access denied"}})

        async with _client(handler) as client:
            with self.assertRaises(TransportError) as ctx:
                await HttpActionInvoker(client).invoke("a", MODEL, {})
        self.assertEqual(ctx.exception.code, "RESPONSE_STATUS")
        self.assertEqual(ctx.exception.message, "Access denied")

    async def test_validation_envelope_returns_errors(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": -4, "errors": {"name": "Name is required"}})

        async with _client(handler) as client:
            result = await HttpActionInvoker(client).invoke("action-order-validate", MODEL, {})
        self.assertEqual(result, {"data": [], "errors": {"name": "Name is required"}})

    async def test_failure_status_with_empty_errors_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": -4, "errors": {}})

        async with _client(handler) as client:
            with self.assertRaises(TransportError) as ctx:
                await HttpActionInvoker(client).invoke("a", MODEL, {})
        self.assertEqual(ctx.exception.code, "RESPONSE_STATUS")

    async def test_http_error_raises(self) -> None:
        async with _client(lambda request: httpx.Response(500, text="oops")) as client:
            with self.assertRaises(TransportError) as ctx:
                await HttpActionInvoker(client).invoke("a", MODEL, {})
        self.assertEqual(ctx.exception.status, 500)

    async def test_non_json_raises(self) -> None:
        async with _client(lambda request: httpx.Response(200, text="<html>")) as client:
            with self.assertRaises(TransportError) as ctx:
                await HttpActionInvoker(client).invoke("a", MODEL, {})
        self.assertEqual(ctx.exception.code, "RESPONSE_INVALID")


class TestHttpDataSource(unittest.IsolatedAsyncioTestCase):
    async def test_save_and_read(self) -> None:
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append((request.url.path, json.loads(request.content or b"{}")))
            return httpx.Response(200, json={"status": 0, "data": [{"id": 4, "version": 1, "name": "A"}]})

        async with _client(handler) as client:
            ds = HttpDataSource(client, MODEL)
            saved = await ds.save({"name": "A"})
            read = await ds.read(4)
        self.assertEqual(saved["id"], 4)
        self.assertEqual(read["version"], 1)
        self.assertEqual(requests[0], (f"/ws/rest/{MODEL}", {"data": {"name": "A"}}))
        self.assertEqual(requests[1][0], f"/ws/rest/{MODEL}/4/fetch")

    async def test_save_with_validation_errors_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": -4, "errors": {"name": "Name is required"}})

        async with _client(handler) as client:
            with self.assertRaises(TransportError) as ctx:
                await HttpDataSource(client, MODEL).save({"name": ""})
        self.assertEqual(ctx.exception.code, "RESPONSE_ERRORS")
        self.assertIn("Name is required", ctx.exception.message)

    async def test_empty_result_raises(self) -> None:
        async with _client(lambda request: httpx.Response(200, json={"status": 0, "data": []})) as client:
            with self.assertRaises(TransportError):
                await HttpDataSource(client, MODEL).read(4)


class TestHttpDownloadFrames(unittest.IsolatedAsyncioTestCase):
    async def test_download_lands_in_export_dir(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"id,name\n1,A\n")

        with tempfile.TemporaryDirectory() as tmp:
            async with _client(handler) as client:
                frames = HttpDownloadFrames(client, tmp)
                frame = frames.open("ws/files/data-export/orders.csv")
                await frames._tasks[frame]
                frames.close(frame)
                path = frames.downloaded[frame]
                self.assertEqual(path.read_bytes(), b"id,name\n1,A\n")
                self.assertEqual(path.name, "orders.csv")

    async def test_close_lets_a_running_download_finish(self) -> None:
        async def slow_body():
            for idx in range(5):
                await asyncio.sleep(0.02)
                yield b"row%d\n" % idx

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=slow_body())

        with tempfile.TemporaryDirectory() as tmp:
            async with _client(handler) as client:
                frames = HttpDownloadFrames(client, tmp)
                frame = frames.open("ws/files/data-export/big.csv")
                await asyncio.sleep(0.03)
                frames.close(frame)
                self.assertNotIn(frame, frames._tasks)
                self.assertNotIn(frame, frames.downloaded)
                await frames.wait()
                self.assertEqual(frames.downloaded[frame].read_bytes(), b"row0\nrow1\nrow2\nrow3\nrow4\n")

    async def test_failed_download_is_logged(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            async with _client(lambda request: httpx.Response(404)) as client:
                frames = HttpDownloadFrames(client, tmp)
                frame = frames.open("ws/files/data-export/gone.csv")
                with self.assertLogs("formact.transport", level="WARNING"):
                    await frames._tasks[frame]
                self.assertNotIn(frame, frames.downloaded)


if __name__ == "__main__":
    unittest.main()
