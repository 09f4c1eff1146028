"""Professional field detection by deterministic keyword scoring."""

from __future__ import annotations

import re
from dataclasses import dataclass

GENERAL_FIELD = "general"


@dataclass(frozen=True)
class FieldProfile:
  """Keywords that identify a field plus the vocabulary used to shape search queries."""

  name: str
  keywords: tuple[str, ...]
  vocabulary: tuple[str, ...]
  video_categories: tuple[str, ...] = ()


# Declaration order is the tie-break order: the first registered profile wins a tie.
FIELD_PROFILES: tuple[FieldProfile, ...] = (
  FieldProfile(
    "robotics",
    ("robot", "elfin", "automatizál", "programoz", "koordinát", "kinematik", "szenzor", "aktuátor", "kollaboratív", "mozgási tartomány", "robotkar", "integrátor", "robotrendszer"),
    ("robotika", "automatizálás", "programozás", "kinematika", "vezérlés"),
    ("robotika", "automatizálás", "ipari robotok"),
  ),
  FieldProfile(
    "safety",
    ("biztonság", "munkavédelem", "vészhelyzet", "óvintézkedés", "védőeszköz", "kockázat", "felelősség", "normák", "szabvány", "iso"),
    ("munkavédelem", "munkabiztonság", "kockázatértékelés", "védőeszközök"),
  ),
  FieldProfile(
    "logistics",
    ("szállítás", "csomagolás", "rögzítés", "pozicionálás", "tárolás", "kezelés"),
    ("logisztika", "anyagmozgatás", "raktározás", "csomagolástechnika"),
  ),
  FieldProfile(
    "industrial",
    ("ipari", "gyártás", "termelés", "üzemeltetés", "technológia", "berendezés"),
    ("gyártástechnológia", "ipari termelés", "üzemeltetés", "karbantartás"),
  ),
  FieldProfile(
    "cooking",
    ("főz", "étel", "recept", "alapanyag", "konyha", "gasztronóm", "lecsó", "paprika", "paradicsom", "hagyma", "kolbász", "magyar konyha", "tradicionális", "szakács", "élelmiszer"),
    ("főzés", "gasztronómia", "szakácsképzés", "élelmiszer-készítés"),
    ("főzés", "szakácsképzés", "gasztronómia"),
  ),
  FieldProfile(
    "welding",
    ("hegeszt", "varrat", "elektróda", "ívhegeszt", "védőgáz hegesztés", "fémhegeszt", "hegesztőtechnika"),
    ("hegesztés", "fémfeldolgozás", "hegesztéstechnika", "varratképzés"),
    ("hegesztés", "fémfeldolgozás", "hegesztéstechnika"),
  ),
  FieldProfile(
    "electrical",
    ("elektrik", "áram", "feszültség", "vezeték", "kapcsoló", "villany"),
    ("elektrotechnika", "villamosság", "elektronika", "áramkörök"),
  ),
  FieldProfile(
    "mechanical",
    ("gép", "szerkezet", "mechanik", "alkatrész", "hajtás", "fogaskerék"),
    ("gépészet", "mechanika", "gépépítés", "szerkezetek"),
  ),
  FieldProfile(
    "construction",
    ("építés", "beton", "tégla", "szerkezet", "alapozás", "falazás"),
    ("építőipar", "építéstechnika", "építészet", "szerkezetépítés"),
  ),
  FieldProfile(
    "automotive",
    ("autó", "jármű", "karosszéria", "fék", "váltó"),
    ("autóipar", "járműtechnika", "gépjárművek", "autószerelés"),
  ),
  FieldProfile(
    "healthcare",
    ("egészség", "beteg", "kezelés", "diagnosztik", "gyógyszer", "ápolás"),
    ("egészségügy", "orvostudomány", "ápolás", "egészségmegőrzés"),
  ),
  FieldProfile(
    "agriculture",
    ("mezőgazd", "növény", "termeszt", "vetés", "aratás", "talaj"),
    ("mezőgazdaság", "növénytermesztés", "állattenyésztés", "agrártechnika"),
  ),
  FieldProfile(
    "textiles",
    ("textil", "szövet", "varr", "fonál", "ruha", "anyag"),
    ("textilipar", "varrás", "szövés", "ruházat"),
  ),
)

GENERAL_PROFILE = FieldProfile(GENERAL_FIELD, (), ())

_PROFILES_BY_NAME: dict[str, FieldProfile] = {profile.name: profile for profile in FIELD_PROFILES}

_WORD_RE = re.compile(r"[\w-]+")
_TITLE_STOP_WORDS = frozenset({"alapok", "bevezetés", "tananyag", "modul", "és", "a", "az"})


def _score(text: str, profile: FieldProfile) -> int:
  return sum(text.count(keyword) for keyword in profile.keywords)


def detect_field(title: str, content: str, subject_context: str | None = None, profession_context: str | None = None) -> str:
  """Return the best scoring field name, or ``general`` when nothing matches."""
  combined = " ".join(part for part in (title, content, subject_context or "", profession_context or "") if part).lower()

  best_name = GENERAL_FIELD
  best_score = 0
  for profile in FIELD_PROFILES:
    score = _score(combined, profile)
    # Strictly greater keeps the earlier profile on ties.
    if score > best_score:
      best_name = profile.name
      best_score = score

  return best_name


def get_field_profile(name: str) -> FieldProfile:
  """Return the profile for a field name; unknown names map to the general profile."""
  return _PROFILES_BY_NAME.get(name, GENERAL_PROFILE)


def title_terms(title: str) -> list[str]:
  """Return title words longer than 3 characters, minus generic module words."""
  terms: list[str] = []
  for word in _WORD_RE.findall(title.lower()):
    if len(word) > 3 and word not in _TITLE_STOP_WORDS and word not in terms:
      terms.append(word)
  return terms


def field_categories(field_name: str, title: str) -> list[str]:
  """Return 2-3 video search categories for a field.

  Fields without explicit categories use their vocabulary; the general field falls
  back to words of the title.
  """
  profile = get_field_profile(field_name)
  categories = list(profile.video_categories or profile.vocabulary[:3])
  if categories:
    return categories[:3]

  fallback = title_terms(title)[:3]
  if fallback:
    return fallback
  first_word = title.strip().lower().split(" ")[0] if title.strip() else ""
  return [first_word] if first_word else []
