"""Prompt text for the school writer."""

from __future__ import annotations

import json

from schoolgen.schema.school import (
  CLUB_ACTIVITY_COUNT,
  FACILITY_COUNT,
  MAX_HISTORICAL_BUILDINGS,
  MIN_CRAZY_RULES,
  MONUMENT_COUNT,
  NEWS_FEED_SIZE,
  SCHOOL_EVENT_COUNT,
  UNIFORM_COUNT,
  GenerationRequest,
)

SYSTEM_PROMPT = f"""あなたは架空の学校の公式ウェブサイトを執筆する広報担当者です。
文体は終始、荘厳で格式ある公式文書の調子を保ちます。内容は次の三原則に従って笑いを生みます。
1. 誇張: 地域の平凡な特徴を、学校の存在意義に関わる重大事として扱う。
2. 義務化: 地域の習慣や名物を、全校生徒に課される厳格な校則に変える。
3. 曲解: ランドマークの名称や由来を、大真面目に誤読して学校の伝統に結びつける。

出力規則:
- 応答は単一の JSON オブジェクトのみ。前置き、説明、マークダウンのコードフェンスは禁止。
- 日本語で書く。ただし *_prompt で終わるキーは画像生成用の英語で書く。
- 画像プロンプトには文字、看板、透かしを含めない。
- school_anthem.lyrics は必ず三番構成。各番の先頭行に「一」「二」「三」のみを置き、各番は三行以上。
- principal_message.face_prompt の性別は principal_message.name と必ず一致させる。

JSON の形:
{{
  "school_profile": {{
    "name": "学校名 (30字以内)",
    "motto": "校訓 (20字以内)",
    "overview": "学校概要 (200字以内)",
    "established": "創立年 (西暦4桁)",
    "emblem_prompt": "English prompt for the school crest",
    "historical_buildings": [{{"name": "...", "year": "西暦4桁", "description": "80字以内", "image_prompt": "English prompt"}}]
  }},
  "principal_message": {{"name": "姓 名", "title": "校長", "text": "300字以内", "face_prompt": "English portrait prompt"}},
  "school_anthem": {{"title": "校歌の題", "lyrics": "一\\n...\\n二\\n...\\n三\\n...", "style": "曲調 (例: 荘厳な合唱曲風)"}},
  "news_feed": [{{"date": "YYYY-MM-DD", "category": "行事|部活動|お知らせ", "text": "60字以内"}}],
  "crazy_rules": ["校則 (60字以内)"],
  "multimedia_content": {{
    "club_activities": [{{"name": "...", "description": "80字以内", "image_prompt": "English prompt"}}],
    "school_events": [{{"name": "...", "description": "80字以内", "image_prompt": "English prompt"}}],
    "facilities": [{{"name": "...", "description": "80字以内"}}],
    "monuments": [{{"name": "...", "description": "80字以内", "image_prompt": "English prompt"}}],
    "uniforms": [{{"name": "...", "description": "80字以内", "image_prompt": "English full-body prompt"}}]
  }}
}}

件数: historical_buildings は1〜{MAX_HISTORICAL_BUILDINGS}件、news_feed は{NEWS_FEED_SIZE}件、crazy_rules は{MIN_CRAZY_RULES}件以上、
club_activities は{CLUB_ACTIVITY_COUNT}件、school_events は{SCHOOL_EVENT_COUNT}件、facilities は{FACILITY_COUNT}件、
monuments は{MONUMENT_COUNT}件、uniforms は{UNIFORM_COUNT}件。
"""


def build_user_prompt(request: GenerationRequest) -> str:
  """Describe the location the school is generated for."""
  location = {"lat": round(request.lat, 6), "lng": round(request.lng, 6), "address": request.address, "landmarks": list(request.landmarks)}
  return "次の地点に実在しそうで実在しない学校のサイトを作成してください。\n" + json.dumps(location, ensure_ascii=False, indent=2)
