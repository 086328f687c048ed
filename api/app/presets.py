from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class Pose:
    label: str
    prompt: str


# Display order of the portrait grid follows this list.
POSES: List[Pose] = [
    Pose("Joyful", "A photo of the person, now looking joyful and celebrating a victory."),
    Pose("Winking", "A photo of the person, now winking at the camera with a thumbs up."),
    Pose("Presenting", "A photo of the person, now presenting something to their side with open palms."),
    Pose("Surprised", "A photo of the person, now looking very surprised with hands on their cheeks."),
    Pose("Sad", "A photo of the person, now looking sad with their hand on their forehead."),
    Pose("Angry", "A photo of the person, now looking angry with their arms crossed."),
    Pose("Thoughtful", "A photo of the person, now in a thoughtful pose with a hand on their chin."),
    Pose("Double Point", "A photo of the person, now smiling and pointing to the side with both hands."),
    Pose("Shushing", "A photo of the person, now making a shushing gesture with a finger to their lips."),
]

PRODUCT_POSE_COUNT = 9

# Selection value that switches an option over to its free-text field.
CUSTOM_OPTION_VALUE = "custom"

BACKGROUND_OPTIONS: List[str] = [
    "Plain White",
    "Photo Studio (Grey)",
    "Modern Office",
    "Cozy Cafe",
    "City Park (Daytime)",
    "Tropical Beach",
    "Classic Library",
    "Minimalist Kitchen",
    "Colorful Bokeh Background",
    "Industrial Brick Wall",
    "Mountain View",
    "Futuristic Interior",
]
DEFAULT_BACKGROUND = BACKGROUND_OPTIONS[0]

MOCKUP_TEMPLATES: List[str] = [
    "T-Shirt",
    "Hoodie",
    "Tote Bag",
    "Coffee Mug",
    "Water Bottle",
    "Wall Poster",
    "Box Packaging",
    "Baseball Cap",
    "Phone Case",
    "Notebook",
    "Beverage Can",
    "Coffee Pouch",
    "Laptop Screen",
    "Sofa Cushion",
    "Paper Shopping Bag",
    "Book Cover",
]

SCENE_PRESETS: List[str] = [
    "Clean White Studio",
    "Premium Gradient Background",
    "Rustic Wooden Table",
    "Cafe Lifestyle",
    "Minimalist Flat Lay",
    "Held by a Model",
    "Urban Background",
    "Nature Scenery",
    "Luxury Marble Surface",
    "Industrial Concrete Background",
    "Product Stage with Spotlight",
    "Transparent Background",
]

LIGHTING_OPTIONS: List[str] = [
    "Bright Studio Lighting",
    "Natural Light (Outdoor)",
    "Dramatic (Strong Shadows)",
    "Soft Diffused Light",
    "Neon / Cyberpunk",
    "Rim Light",
    "Top-down Light",
    "Golden Hour (Sunset)",
]

PLACEMENT_OPTIONS: List[str] = [
    "Centered on the Surface",
    "Front Label",
    "Top Right Corner",
    "Bottom Left Corner",
    "Wrapped Around the Object",
    "Repeating Pattern (Seamless)",
    "Back of the Product",
    "Lid or Top Section",
]

DESIGN_SIZE_OPTIONS: List[str] = [
    "Small (Icon/Logo)",
    "Medium (Main Graphic)",
    "Large (Covers Most of It)",
    "Extra Large (Full Surface Print)",
]

DEFAULT_PRODUCT_COLOR = "Black"


def catalog() -> Dict[str, object]:
    return {
        "custom_option": CUSTOM_OPTION_VALUE,
        "poses": [pose.label for pose in POSES],
        "backgrounds": list(BACKGROUND_OPTIONS),
        "mockup_templates": list(MOCKUP_TEMPLATES),
        "scenes": list(SCENE_PRESETS),
        "lighting": list(LIGHTING_OPTIONS),
        "placements": list(PLACEMENT_OPTIONS),
        "design_sizes": list(DESIGN_SIZE_OPTIONS),
        "default_product_color": DEFAULT_PRODUCT_COLOR,
    }
