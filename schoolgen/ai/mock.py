"""Deterministic fallback artifact built only from the request."""

from __future__ import annotations

from schoolgen.schema.images import ImageType, placeholder_url
from schoolgen.schema.school import (
  DEFAULT_ANTHEM_STYLE,
  DEFAULT_ANTHEM_TITLE,
  GenerationRequest,
  HistoricalBuilding,
  MediaItem,
  MultimediaContent,
  NewsItem,
  PrincipalMessage,
  SchoolAnthem,
  SchoolArtifact,
  SchoolProfile,
)


def mock_school_name(request: GenerationRequest) -> str:
  return f"{request.primary_landmark}学園高等学校"


def mock_lyrics(school_name: str, landmark: str) -> str:
  """Three verses in the marked form the anthem invariant expects."""
  return "\n".join(
    [
      "一",
      f"{landmark}の 空高く",
      "希望の光 満ちあふれ",
      f"我らが {school_name} 誉れあれ",
      "二",
      "学びの庭に 集いたる",
      "若き心は 燃え上がり",
      f"我らが {school_name} 光あれ",
      "三",
      "時を越えても 変わらずに",
      "永遠に歌わん この誓い",
      f"我らが {school_name} 栄えあれ",
    ]
  )


def _media(name: str, description: str, prompt: str, image_type: ImageType) -> MediaItem:
  return MediaItem(name=name, description=description, image_prompt=prompt, image_url=placeholder_url(image_type))


def build_mock_artifact(request: GenerationRequest) -> SchoolArtifact:
  """Build the fallback artifact; equal requests produce equal artifacts.

  Every image slot carries a prompt and a placeholder URL so the image step can
  still fill them from real providers or the shared mock-asset cache.
  """
  landmark = request.primary_landmark
  name = mock_school_name(request)
  address = request.address or ""

  profile = SchoolProfile(
    name=name,
    motto="誠実・勤勉・大喜利",
    overview=f"{address}に位置する{name}は、{landmark}を心の支えとし、地域とともに歩んできた伝統校である。",
    established="1924",
    emblem_prompt="A traditional Japanese high school crest, symmetrical emblem with cherry blossom and laurel motifs, navy and gold, flat vector style",
    emblem_url=placeholder_url(ImageType.EMBLEM),
    historical_buildings=[
      HistoricalBuilding(
        name="創立時の木造校舎",
        year="1924",
        description=f"{landmark}を望む丘に建てられた最初の校舎。",
        image_prompt="A wooden Japanese school building from the 1920s on a hill, sepia photograph style",
        image_url=placeholder_url(ImageType.HISTORICAL_BUILDING),
      ),
      HistoricalBuilding(
        name="現在の鉄筋校舎",
        year="1998",
        description="生徒数の増加に伴い建て替えられた現在の校舎。",
        image_prompt="A modern concrete Japanese high school building with a clock tower, bright daylight photograph",
        image_url=placeholder_url(ImageType.HISTORICAL_BUILDING),
      ),
    ],
  )

  principal = PrincipalMessage(
    name="山田 太郎",
    title="校長",
    text=f"本校は{landmark}の見守るこの地で、生徒一人ひとりの可能性を全力で伸ばすことを誓います。",
    face_prompt="Portrait of a dignified elderly Japanese man in a dark suit, school principal, soft studio lighting",
    face_image_url=placeholder_url(ImageType.PRINCIPAL_FACE),
  )

  anthem = SchoolAnthem(title=DEFAULT_ANTHEM_TITLE, lyrics=mock_lyrics(name, landmark), style=DEFAULT_ANTHEM_STYLE)

  news = [
    NewsItem(date="2024-04-08", category="行事", text="入学式を挙行しました。"),
    NewsItem(date="2024-05-20", category="部活動", text=f"{landmark}研究部が地区大会で入賞しました。"),
    NewsItem(date="2024-07-19", category="お知らせ", text="終業式の日程をお知らせします。"),
    NewsItem(date="2024-09-14", category="行事", text="文化祭を開催しました。"),
    NewsItem(date="2024-10-10", category="お知らせ", text="校舎耐震工事のお知らせ。"),
  ]

  rules = [
    f"登校時は{landmark}の方角に一礼すること。",
    "廊下は静かに、しかし力強く歩くこと。",
    "昼休みの校歌斉唱は三番まで省略しないこと。",
  ]

  media = MultimediaContent(
    club_activities=[_media(f"{landmark}研究部", "地域の歴史と文化を調べる部活動。", "Japanese high school students researching local history in a classroom, warm light", ImageType.CLUB)],
    school_events=[
      _media("入学式", "新入生を迎える式典。", "Japanese school entrance ceremony in a gymnasium with cherry blossoms outside", ImageType.EVENT),
      _media("体育祭", "全校で競う秋の一大行事。", "Japanese high school sports festival on a dirt field, students in gym uniforms", ImageType.EVENT),
      _media("文化祭", "各クラスが出し物を競う学園祭。", "Japanese school culture festival with decorated classrooms and food stalls", ImageType.EVENT),
    ],
    facilities=[
      MediaItem(name="図書館", description="蔵書三万冊を誇る。"),
      MediaItem(name="講堂", description="全校集会に用いられる。"),
      MediaItem(name="体育館", description="部活動の拠点。"),
    ],
    monuments=[_media("創立記念碑", f"{landmark}の石で作られた記念碑。", "A stone monument engraved with a school founding inscription in a schoolyard", ImageType.MONUMENT)],
    uniforms=[_media("制服", "紺色のブレザーにえんじ色のネクタイ。", "Full-body photograph of a Japanese high school uniform, navy blazer and maroon tie, on a mannequin", ImageType.UNIFORM)],
  )

  return SchoolArtifact(
    school_profile=profile,
    principal_message=principal,
    school_anthem=anthem,
    news_feed=news,
    crazy_rules=rules,
    multimedia_content=media,
    history=[f"1924年 {landmark}のふもとに開校。", "1998年 現校舎竣工。"],
    access={"address": address, "nearest": landmark},
  )
