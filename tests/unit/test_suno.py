from __future__ import annotations

import json

import httpx
import pytest

from schoolgen.services import kana
from schoolgen.services.suno import SUNO_TAGS, SunoClient, SunoError, extract_task_id, format_suno_lyrics, interpret_poll

LYRICS = "一\n朝の光\n二\n昼の風\n三\n夜の星"


def test_lyrics_are_tagged_per_verse() -> None:
  assert format_suno_lyrics(LYRICS) == "[Verse 1]\n朝の光\n\n[Verse 2]\n昼の風\n\n[Verse 3]\n夜の星"


@pytest.mark.parametrize(
  ("payload", "expected"),
  [
    ({"code": "success", "data": "task-1"}, "task-1"),
    ({"task_id": "task-2"}, "task-2"),
    ({"data": {"id": 42}}, "42"),
    ({"result": {"taskId": "task-3"}}, "task-3"),
    ({"message": "ok"}, None),
  ],
)
def test_task_id_is_found_in_known_shapes(payload: dict, expected: str | None) -> None:
  assert extract_task_id(payload) == expected


def test_poll_interpretation() -> None:
  assert interpret_poll({"data": [{"status": "streaming", "audio_url": "https://cdn1.suno.ai/a.mp3"}]}) == ("complete", "https://cdn1.suno.ai/a.mp3")
  assert interpret_poll({"データ": {"ステータス": "complete", "clips": [{"stream_url": "https://cdn1.suno.ai/b.mp3"}]}}) == ("complete", "https://cdn1.suno.ai/b.mp3")
  assert interpret_poll({"status": "FAILED"}) == ("failed", None)
  assert interpret_poll({"status": "complete", "data": []}) == ("pending", None)
  assert interpret_poll({"status": "queued"}) == ("pending", None)
  assert interpret_poll("not a dict") == ("pending", None)


def _client(handler) -> httpx.AsyncClient:
  return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_generate_submits_and_polls_until_audio_is_ready() -> None:
  seen: list[tuple[str, str]] = []
  polls = {"count": 0}

  def handler(request: httpx.Request) -> httpx.Response:
    seen.append((request.method, request.url.path))
    if request.url.path == "/suno/submit/music":
      body = json.loads(request.content)
      assert body["tags"] == f"{SUNO_TAGS}, 行進曲"
      assert body["prompt"].startswith("[Verse 1]")
      assert request.headers["Authorization"] == "Bearer secret"
      return httpx.Response(200, json={"code": "success", "data": "task-9"})
    if request.url.path == "/suno/fetch/task-9":
      polls["count"] += 1
      if polls["count"] < 2:
        return httpx.Response(200, json={"status": "queued"})
      return httpx.Response(200, json={"data": {"status": "complete", "data": [{"audio_url": "https://cdn1.suno.ai/final.mp3"}]}})
    return httpx.Response(404)

  async with _client(handler) as http:
    client = SunoClient("secret", "https://suno.test", poll_interval=0.01, poll_timeout=5, client=http)
    url = await client.generate(LYRICS, title="校歌", style="行進曲")

  assert url == "https://cdn1.suno.ai/final.mp3"
  assert seen[0] == ("POST", "/suno/submit/music")
  assert polls["count"] == 2


@pytest.mark.anyio
async def test_poll_falls_through_missing_routes() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/suno/submit/music":
      return httpx.Response(200, json={"task_id": "t1"})
    if path == "/suno/fetch/t1":
      return httpx.Response(404)
    if path == "/suno/task/t1":
      return httpx.Response(200, text="<html>gateway</html>", headers={"content-type": "text/html"})
    return httpx.Response(200, json={"clips": [{"url": "https://cdn1.suno.ai/c.mp3"}]})

  async with _client(handler) as http:
    client = SunoClient("k", "https://suno.test", poll_interval=0.01, poll_timeout=5, client=http)
    assert await client.generate(LYRICS, title="校歌") == "https://cdn1.suno.ai/c.mp3"


@pytest.mark.anyio
async def test_failed_task_raises() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/suno/submit/music":
      return httpx.Response(200, json={"data": "t2"})
    return httpx.Response(200, json={"status": "error"})

  async with _client(handler) as http:
    client = SunoClient("k", "https://suno.test", poll_interval=0.01, poll_timeout=5, client=http)
    with pytest.raises(SunoError):
      await client.generate(LYRICS, title="校歌")


@pytest.mark.anyio
async def test_poll_timeout_raises() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/suno/submit/music":
      return httpx.Response(200, json={"data": "t3"})
    return httpx.Response(200, json={"status": "processing"})

  async with _client(handler) as http:
    client = SunoClient("k", "https://suno.test", poll_interval=0.01, poll_timeout=0.05, client=http)
    with pytest.raises(SunoError, match="did not finish"):
      await client.generate(LYRICS, title="校歌")


@pytest.mark.anyio
async def test_submit_without_task_id_raises() -> None:
  async with _client(lambda request: httpx.Response(200, json={"message": "accepted"})) as http:
    client = SunoClient("k", "https://suno.test", poll_interval=0.01, poll_timeout=1, client=http)
    with pytest.raises(SunoError, match="no task id"):
      await client.generate(LYRICS, title="校歌")


def _has_kanji(text: str) -> bool:
  return any("一" <= char <= "鿿" for char in text)


def test_reading_is_applied_to_verse_text_only() -> None:
  assert format_suno_lyrics(LYRICS, reading=lambda verse: f"<{verse}>") == "[Verse 1]\n<朝の光>\n\n[Verse 2]\n<昼の風>\n\n[Verse 3]\n<夜の星>"


def test_lyrics_are_read_as_hiragana() -> None:
  converted = kana.to_hiragana("朝の光\n\n夜の星")

  assert not _has_kanji(converted)
  assert converted.split("\n")[1] == ""
  assert len(converted.split("\n")) == 3


def test_hiragana_failure_keeps_lyrics_as_written(monkeypatch: pytest.MonkeyPatch) -> None:
  def broken() -> None:
    raise RuntimeError("dictionary missing")

  monkeypatch.setattr(kana, "_converter", broken)

  assert kana.to_hiragana("朝の光") == "朝の光"


@pytest.mark.anyio
@pytest.mark.parametrize(("hiragana", "expect_kanji"), [(True, False), (False, True)])
async def test_submitted_prompt_uses_hiragana_when_enabled(hiragana: bool, expect_kanji: bool) -> None:
  prompts: list[str] = []

  def handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/suno/submit/music":
      prompts.append(json.loads(request.content)["prompt"])
      return httpx.Response(200, json={"data": "t5"})
    return httpx.Response(200, json={"clips": [{"audio_url": "https://cdn1.suno.ai/k.mp3"}]})

  async with _client(handler) as http:
    client = SunoClient("k", "https://suno.test", poll_interval=0.01, poll_timeout=5, hiragana=hiragana, client=http)
    await client.generate(LYRICS, title="校歌")

  assert prompts[0].startswith("[Verse 1]\n")
  assert _has_kanji(prompts[0]) is expect_kanji
