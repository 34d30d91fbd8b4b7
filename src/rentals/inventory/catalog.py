"""Predefined equipment catalog.

These items exist from day one; bootstrapping creates any that are missing
and never touches ones already stored. Predefined items may be edited but
not deleted.
"""

from dataclasses import dataclass

from rentals.inventory.item import ItemCategory


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name: str
    category: str
    total_quantity: int
    daily_rate: float


PREDEFINED_CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        "sachtler-tripod",
        "Sachtler Video 20 S1 100mm Ball Head Tripod System",
        ItemCategory.TRIPOD.value,
        2,
        3500.0,
    ),
    CatalogEntry(
        "cartoni-tripod",
        "Cartoni Laser Z100 Fluid Head Tripod Aluminum 2",
        ItemCategory.TRIPOD.value,
        4,
        3500.0,
    ),
    CatalogEntry(
        "eimage-tripod",
        "E-Image 2-Stage Aluminum Tripod with GH15 Head",
        ItemCategory.TRIPOD.value,
        3,
        2500.0,
    ),
    CatalogEntry("pmw-200", "PMW-200", ItemCategory.CAMERA.value, 3, 5000.0),
    CatalogEntry("sony-pmw-350k", "sony pmw-350k", ItemCategory.CAMERA.value, 2, 7000.0),
    CatalogEntry("panasonic-hpx3100", "Panasonic AJ HPX3100", ItemCategory.CAMERA.value, 3, 8000.0),
    CatalogEntry(
        "saramonic-comset",
        "Saramonic WiTalk-WT7S 7-Person Full-Duplex Wireless Intercom System",
        ItemCategory.COMSET.value,
        2,
        3000.0,
    ),
    CatalogEntry(
        "lumantek-switcher",
        "Lumantek ez-Pro VS10 3G-SDI/HDMI Video Switcher",
        ItemCategory.SWITCHER.value,
        2,
        4000.0,
    ),
    CatalogEntry("sony-mcx-500", "sony mcx-500", ItemCategory.SWITCHER.value, 2, 4500.0),
    CatalogEntry(
        "behringer-mixer",
        "Behringer Xenyx QX602MP3 6-Channel Mixer",
        ItemCategory.AUDIO_MIXER.value,
        2,
        1500.0,
    ),
    CatalogEntry(
        "xtuga-mixer",
        "Xtuga E22 Best USB / XLR Audio Interface",
        ItemCategory.AUDIO_MIXER.value,
        2,
        1200.0,
    ),
    CatalogEntry(
        "atem-monitor",
        "monitor ATEM156-CO HDMI 15.6 Video Monitor",
        ItemCategory.MONITOR.value,
        2,
        2000.0,
    ),
    CatalogEntry(
        "lilliput-monitor",
        "Lilliput BM150-4K Carry-On 4K Monitor",
        ItemCategory.MONITOR.value,
        2,
        1800.0,
    ),
    CatalogEntry("tvlogic-monitor", "tv logic multi format", ItemCategory.MONITOR.value, 2, 2200.0),
    CatalogEntry(
        "accsoon-transmitter",
        "Accsoon CineView Master 4K",
        ItemCategory.VIDEO_TRANSMITTER.value,
        3,
        2500.0,
    ),
    CatalogEntry(
        "hollyland-transmitter",
        "Hollyland Mars 4K Wireless Video Transmitter",
        ItemCategory.VIDEO_TRANSMITTER.value,
        3,
        3000.0,
    ),
    CatalogEntry("dolly-platform", "Dolly Platform with Tracks", ItemCategory.CAMERA_DOLLY.value, 1, 5000.0),
    CatalogEntry("wheels-slider", "Wheels Slider Tripod", ItemCategory.CAMERA_DOLLY.value, 3, 3500.0),
)
