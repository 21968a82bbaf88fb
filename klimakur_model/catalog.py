"""
Static reference data for the Klimakur measure dashboard.

Holds the measure catalog (Klimakur 2030 measures with potential in kt CO2e
and unit cost in NOK/tonne), the national target scenarios, the reference
emissions trajectory, the declared conflict groups and the cost buckets used
for grouping. Everything here is immutable and process-wide.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Tuple, Dict, FrozenSet, Sequence
import re
import unicodedata


# --- Measures ---

_ID_PATTERN = re.compile(r"^([A-ZÆØÅ]{1,3}\d{1,3}(?:-\d+)?)\b")

KT_PER_MT = 1000.0


def extract_measure_id(title: str) -> str:
    """
    Extract the leading measure code from a title.

    "T05 100% av nye personbiler ..." -> "T05". Titles without a code
    (e.g. "Diverse nulltiltak") use the full title as id.
    """
    match = _ID_PATTERN.match(title.strip())
    if match:
        return match.group(1)
    return title


@dataclass(frozen=True)
class MeasureRecord:
    """
    A single climate-mitigation measure.

    potential is in kt CO2e; cost is NOK per tonne, or None when the cost
    has not been assessed (distinct from a zero cost).
    """
    title: str
    category: str
    potential: float  # kt CO2e
    cost: Optional[float] = None  # NOK/tonne, None = unknown
    cost_range_label: Optional[str] = None
    id: str = field(default="")

    def __post_init__(self):
        if not self.id:
            object.__setattr__(self, "id", extract_measure_id(self.title))

    @property
    def potential_mt(self) -> float:
        """Potential in Mt CO2e."""
        return self.potential / KT_PER_MT

    @property
    def has_known_cost(self) -> bool:
        return self.cost is not None


CATEGORIES: Tuple[str, ...] = (
    "Veitransport",
    "Sjøfart/fiske/havbruk",
    "Annen transport",
    "Jordbruk",
    "Industri/bergverk",
    "Petroleum",
    "CCS",
    "Andre tiltak",
)

# Numeric cost used for each textual cost range (upper tier of the range).
# These are catalog defaults; ParameterStore.range_costs can reprice a tier.
UNKNOWN_RANGE_LABEL = "Varierer"
RANGE_LABEL_COSTS: Dict[str, Optional[float]] = {
    "<500": 500.0,
    "500-1500": 1500.0,
    ">1500": 2000.0,
    "Varierer": None,
}

# (title, category, potential kt, cost range label)
_RAW_MEASURES: Tuple[Tuple[str, str, float, str], ...] = (
    # Veitransport
    ("T01 Nullvekstmål for personbiltransporten", "Veitransport", 760, "500-1500"),
    ("T02 Overføring av gods fra vei til sjø og bane", "Veitransport", 480, ">1500"),
    ("T03 Forbedret logistikk for varebiltransport", "Veitransport", 420, "<500"),
    ("T04 Forbedret logistikk og økt effektivisering av lastebiler", "Veitransport", 1190, "<500"),
    ("T05 100% av nye personbiler er elektriske innen 2025", "Veitransport", 2540, "500-1500"),
    ("T06 100% av nye lette varebiler er elektriske innen 2025", "Veitransport", 690, "500-1500"),
    ("T07 100% av nye tyngre varebiler er elektriske innen 2030", "Veitransport", 280, "<500"),
    ("T08 50% av nye lastebiler er el-/hydrogen i 2030", "Veitransport", 1130, "500-1500"),
    ("T09 100% av nye bybusser er elektriske innen 2025", "Veitransport", 1080, "500-1500"),
    ("T10 75% av nye langdistansebusser er el-/hydrogen i 2030", "Veitransport", 170, "500-1500"),
    ("T11 45% av nysalg av MC/moped er elektriske i 2030", "Veitransport", 40, "<500"),
    ("T12 10% av nye trekkvogner går på biogass i 2030", "Veitransport", 470, ">1500"),
    ("T13 Økt bruk av avansert flytende biodrivstoff i veitransport", "Veitransport", 2550, ">1500"),

    # Sjøfart, fiske og havbruk
    ("S01 Teknisk-operasjonelle tiltak (energieffektivisering)", "Sjøfart/fiske/havbruk", 130, "Varierer"),
    ("S03 Avansert biodrivstoff til skipsfart", "Sjøfart/fiske/havbruk", 1190, ">1500"),
    ("S04 Landstrøm", "Sjøfart/fiske/havbruk", 830, "500-1500"),
    ("S05 Tiltak på godsskip (Ammoniakk/LNG/Plug-in)", "Sjøfart/fiske/havbruk", 190, ">1500"),
    ("S06 Tiltak på offshorefartøy (Hydrogen/Plug-in)", "Sjøfart/fiske/havbruk", 1020, ">1500"),
    ("S07 Tiltak på fiskefartøy (Plug-in)", "Sjøfart/fiske/havbruk", 180, ">1500"),
    ("S08 Tiltak på bulkskip (Ammoniakk/LNG/Plug-in)", "Sjøfart/fiske/havbruk", 90, ">1500"),
    ("S09 Tiltak innen havbruk (ammoniakk/plug-in)", "Sjøfart/fiske/havbruk", 1070, ">1500"),
    ("S10 Tiltak på ferger (Hydrogen/Plug-in)", "Sjøfart/fiske/havbruk", 1360, ">1500"),
    ("S11 Tiltak på hurtigbåter (Hydrogen/Plug-in)", "Sjøfart/fiske/havbruk", 520, ">1500"),
    ("S12 Tiltak på cruiseskip (Hydrogen/Plug-in)", "Sjøfart/fiske/havbruk", 0, ">1500"),
    ("S13 Tiltak på andre spesialfartøy (Hydrogen/Plug-in)", "Sjøfart/fiske/havbruk", 50, ">1500"),

    # Annen transport (ikke-veigående m.m.)
    ("AT01 Effektivisering maskiner på bygg/anlegg", "Annen transport", 420, "<500"),
    ("AT02 70% av nye ikke-veigående maskiner/kjøretøy er elektriske (2030)", "Annen transport", 1750, ">1500"),
    ("AT03 Nullutslippsløsninger for jernbane", "Annen transport", 230, "<500"),
    ("AT04 Elektrifisering av fritidsbåter", "Annen transport", 30, ">1500"),
    ("AT05 Avansert flytende biodrivstoff i avgiftsfri diesel", "Annen transport", 1890, ">1500"),
    # S09 is listed under both sectors in the source material
    ("S09 Tiltak innen havbruk (ammoniakk/plug-in)", "Annen transport", 850, ">1500"),
    ("O01 Utfasing av mineralolje/gass til byggvarme på byggeplasser", "Annen transport", 760, "<500"),

    # Jordbruk
    ("J01 Overgang fra rødt kjøtt til plantebasert kost og fisk", "Jordbruk", 2890, "<500"),
    ("J02 Redusert matsvinn", "Jordbruk", 1530, "<500"),
    ("J03 Husdyrgjødsel til biogass", "Jordbruk", 250, ">1500"),
    ("J04 Diverse gjødseltiltak", "Jordbruk", 330, ">1500"),
    ("J05 Stans i nydyrking av myr", "Jordbruk", 120, "<500"),

    # Industri/bergverk
    ("I01 Energieffektivisering i annen industri og bergverk", "Industri/bergverk", 300, "<500"),
    ("I02 Konvertering til elkraft i annen industri og bergverk", "Industri/bergverk", 610, "500-1500"),
    ("I03 Konvertering til biobrensel i annen industri og bergverk", "Industri/bergverk", 150, "500-1500"),
    ("I04 Konvertering til fjernvarme i annen industri og bergverk", "Industri/bergverk", 20, "<500"),
    ("I05 Konvertering til hydrogen i annen industri og bergverk", "Industri/bergverk", 10, ">1500"),
    ("I06 Fast biomasse i asfaltindustrien", "Industri/bergverk", 520, "<500"),
    ("I07 Konvertering i metallurgisk industri", "Industri/bergverk", 110, "500-1500"),
    ("I08 Konvertering i kjemisk industri", "Industri/bergverk", 80, "500-1500"),
    ("I09 Økt andel trekull i silisiumkarbidindustrien", "Industri/bergverk", 40, "<500"),
    ("I10 Reduserte lystgassutslipp fra kunstgjødselproduksjon", "Industri/bergverk", 830, "<500"),

    # Petroleum (ikke-kvotepliktige)
    ("P01 Økt gjenvinning av metan/NMVOC ved råoljelasting offshore", "Petroleum", 280, "500-1500"),
    ("P02 Reduksjon av metan/NMVOC fra kaldventilering offshore", "Petroleum", 1160, "500-1500"),
    ("P03 Reduksjon av metan/NMVOC fra petroleumsanlegg på land", "Petroleum", 230, ">1500"),

    # CCS
    ("E01 CCS på Oslo Fortum Varme (Klemetsrud)", "CCS", 1300, "500-1500"),
    ("E02 CCS på BIR (Bergen)", "CCS", 260, "500-1500"),
    ("E03 CCS på Heimdal (Trondheim)", "CCS", 260, "500-1500"),

    # Andre tiltak
    ("E04 Erstatte olje/gass i fjernvarme med fornybar", "Andre tiltak", 20, ">1500"),
    ("O01 Utfasing av mineralolje/gass til byggvarme (permanent)", "Andre tiltak", 140, "<500"),
    ("O02 Erstatte gassbruk til permanent oppvarming av bygg", "Andre tiltak", 950, ">1500"),
    ("O03 Forsert utskifting av vedovner", "Andre tiltak", 510, "<500"),
    ("E05 Erstatte kullkraft med fornybar i Longyearbyen", "Andre tiltak", 430, "<500"),
    ("F01 Økt innsamling/destruksjon av brukt HFK", "Andre tiltak", 650, "<500"),
    ("E06 Økt utsortering av brukte tekstiler til materialgjenvinning", "Andre tiltak", 200, "<500"),
    ("E07 Økt utsortering av plastavfall til materialgjenvinning", "Andre tiltak", 400, ">1500"),
    ("A01 Økt uttak av metan fra avfallsdeponi", "Andre tiltak", 760, "<500"),
    ("Diverse nulltiltak", "Andre tiltak", 3900, "<500"),
)


def build_catalog(raw: Sequence[Tuple[str, str, float, str]]) -> Tuple[MeasureRecord, ...]:
    """Build measure records from (title, category, potential_kt, range_label) tuples."""
    return tuple(
        MeasureRecord(
            title=title,
            category=category,
            potential=float(potential),
            cost=RANGE_LABEL_COSTS.get(label),
            cost_range_label=label,
        )
        for title, category, potential, label in raw
    )


CATALOG: Tuple[MeasureRecord, ...] = build_catalog(_RAW_MEASURES)


def catalog_titles(catalog: Sequence[MeasureRecord]) -> List[str]:
    """Distinct titles in catalog order."""
    seen = set()
    titles = []
    for m in catalog:
        if m.title not in seen:
            seen.add(m.title)
            titles.append(m.title)
    return titles


def find_measures(catalog: Sequence[MeasureRecord], key: str) -> List[MeasureRecord]:
    """
    Look up measures by exact title, falling back to measure id.

    Returns every matching row (ids and titles are not unique).
    """
    by_title = [m for m in catalog if m.title == key]
    if by_title:
        return by_title
    return [m for m in catalog if m.id == key]


def validate_catalog(catalog: Sequence[MeasureRecord]) -> List[str]:
    """
    Validate catalog invariants and return list of messages.

    Duplicate titles and ids shared across categories are reported, not
    removed: the duplicated rows are kept as distinct rows.
    """
    issues = []
    title_categories: Dict[str, List[str]] = {}
    id_titles: Dict[str, List[str]] = {}

    for m in catalog:
        if m.potential < 0:
            issues.append(f"'{m.title}' has negative potential {m.potential}")
        if m.cost is not None and m.cost < 0:
            issues.append(f"'{m.title}' has negative cost {m.cost}")
        if m.category not in CATEGORIES:
            issues.append(f"'{m.title}' has unknown category '{m.category}'")
        title_categories.setdefault(m.title, []).append(m.category)
        id_titles.setdefault(m.id, []).append(m.title)

    for title, cats in title_categories.items():
        if len(cats) > 1:
            issues.append(f"Duplicate title '{title}' in categories: {', '.join(cats)}")

    for measure_id, titles in id_titles.items():
        distinct = sorted(set(titles))
        if len(distinct) > 1:
            issues.append(f"Measure id '{measure_id}' shared by: {'; '.join(distinct)}")

    return issues


# --- Targets and reference trajectory ---

BASELINE_1990_MT = 51.0


@dataclass(frozen=True)
class TargetScenario:
    """A national reduction target relative to the 1990 baseline (Mt CO2e)."""
    key: str
    label: str
    year: int
    reduction_fraction: float
    baseline_1990: float = BASELINE_1990_MT

    @property
    def level(self) -> float:
        """Allowed emissions level in the target year (Mt)."""
        return self.baseline_1990 * (1 - self.reduction_fraction)


TARGET_SCENARIOS: Dict[str, TargetScenario] = {
    "55": TargetScenario("55", "55 % kutt innen 2030", 2030, 0.55),
    "70": TargetScenario("70", "70 % kutt innen 2035", 2035, 0.70),
    "75": TargetScenario("75", "75 % kutt innen 2035", 2035, 0.75),
}

DEFAULT_TARGET = "70"


@dataclass(frozen=True)
class ReferenceTrajectory:
    """
    Emissions levels (Mt CO2e) the gap analysis is measured against.

    reference_level is the projected level under policy already in place;
    current_level is the latest inventory figure.
    """
    baseline_1990: float = BASELINE_1990_MT
    reference_level: float = 31.7
    reference_year: int = 2030
    current_level: float = 46.6
    current_year: int = 2023


REFERENCE_TRAJECTORY = ReferenceTrajectory()


# --- Conflict groups ---

@dataclass(frozen=True)
class ConflictGroup:
    """Measures whose potentials overlap and should not be summed naively."""
    name: str
    ids: FrozenSet[str]
    rationale: str


CONFLICT_GROUPS: Tuple[ConflictGroup, ...] = (
    ConflictGroup(
        name="road-fuel",
        ids=frozenset({"T05", "T06", "T08", "T12", "T13"}),
        rationale=("Biodrivstoff og elektrifisering i veitransport kutter de samme "
                   "fossile drivstoffvolumene; samlet potensial overvurderes."),
    ),
    ConflictGroup(
        name="shipping-fuel",
        ids=frozenset({"S03", "S05", "S06", "S07", "S08", "S10", "S11", "S12", "S13"}),
        rationale=("Avansert biodrivstoff til skipsfart overlapper med fartøysspesifikke "
                   "tiltak som fjerner det samme forbruket."),
    ),
    ConflictGroup(
        name="non-road-diesel",
        ids=frozenset({"AT01", "AT02", "AT05"}),
        rationale=("Elektrifisering, effektivisering og biodiesel i ikke-veigående "
                   "maskiner virker på samme avgiftsfrie diesel."),
    ),
    ConflictGroup(
        name="manure",
        ids=frozenset({"J03", "J04"}),
        rationale="Biogass fra husdyrgjødsel og øvrige gjødseltiltak behandler samme gjødselmengde.",
    ),
    ConflictGroup(
        name="building-heat",
        ids=frozenset({"O01", "O02"}),
        rationale="Utfasing av olje/gass til byggvarme telles både for byggeplasser og permanent oppvarming.",
    ),
)


# --- Cost buckets ---

ASSUMED_BUCKET = "Antatt"


@dataclass(frozen=True)
class CostBucket:
    """
    A unit-cost range used for grouping, covering (lower, upper].

    The assumed-cost bucket has no numeric range.
    """
    key: str
    label: str
    lower: float = float("-inf")
    upper: float = float("inf")
    assumed: bool = False

    def contains(self, unit_cost: float) -> bool:
        if self.assumed:
            return False
        return self.lower < unit_cost <= self.upper


COST_BUCKETS: Tuple[CostBucket, ...] = (
    CostBucket(ASSUMED_BUCKET, "Antatt kostnad (ukjent)", assumed=True),
    CostBucket("<500", "Under 500 kr/t", float("-inf"), 500.0),
    CostBucket("500-1500", "500–1500 kr/t", 500.0, 1500.0),
    CostBucket(">1500", "Over 1500 kr/t", 1500.0, float("inf")),
)


def bucket_for(unit_cost: float, is_assumed: bool,
               buckets: Sequence[CostBucket] = COST_BUCKETS) -> str:
    """Return the key of the bucket a resolved unit cost falls into."""
    for bucket in buckets:
        if bucket.assumed:
            if is_assumed:
                return bucket.key
            continue
        if not is_assumed and bucket.contains(unit_cost):
            return bucket.key
    raise ValueError(f"No cost bucket covers unit cost {unit_cost} (assumed={is_assumed})")


# --- Reference documents ---

DOCUMENT_BASE_URL = "https://www.miljodirektoratet.no/klimakur/tiltaksark"

_TRANSLITERATE = str.maketrans({
    "æ": "ae", "Æ": "ae",
    "ø": "o", "Ø": "o",
    "å": "a", "Å": "a",
})


def slugify(text: str) -> str:
    """
    Lower-case, diacritic-free, hyphenated slug.

    "Sjøfart/fiske/havbruk" -> "sjofart-fiske-havbruk"
    """
    text = text.translate(_TRANSLITERATE)
    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = re.sub(r"[^a-zA-Z0-9]+", "-", text.lower())
    return text.strip("-")


def document_url(measure: MeasureRecord, base_url: str = DOCUMENT_BASE_URL) -> str:
    """Build the reference-document address for a measure."""
    title = measure.title
    if measure.id != title and title.startswith(measure.id):
        title = title[len(measure.id):]
    id_part = slugify(measure.id) if measure.id != measure.title else ""
    title_part = slugify(title)
    leaf = f"{id_part}-{title_part}" if id_part else title_part
    return f"{base_url.rstrip('/')}/{slugify(measure.category)}/{leaf}"
