import json
import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

GRADIENT = "linear-gradient(135deg, #667eea 0%, #764ba2 100%)"

DEFAULT_STYLE_CONFIG: Dict[str, str] = {
    # Colors
    "primaryColor": "#667eea",
    "secondaryColor": "#764ba2",
    "textColor": "#333",
    "textColorLight": "#6b7280",
    "backgroundColor": "#ffffff",
    "backgroundColorLight": "#f8fafc",
    "borderColor": "#e1e5e9",
    "userMessageBg": GRADIENT,
    "userMessageColor": "#ffffff",
    "assistantMessageBg": "#ffffff",
    "assistantMessageColor": "#333",
    "inputBackground": "#f3f4f6",
    # Sizes & spacing
    "borderRadius": "18px",
    "borderRadiusSmall": "6px",
    "fontSize": "14px",
    "fontSizeLarge": "18px",
    "fontSizeSmall": "12px",
    "padding": "20px",
    "paddingSmall": "12px",
    # Chat bubble
    "chatBubbleSize": "60px",
    "chatBubbleBorderRadius": "50%",
    # Header
    "headerBackground": GRADIENT,
    "headerColor": "#ffffff",
    "headerPadding": "20px",
    # Messages
    "messageRadius": "18px",
    "messagePadding": "12px 16px",
    "messageBorderWidth": "1px",
    # Input
    "inputBorderRadius": "26px",
    "inputPadding": "12px 18px",
    "inputFontSize": "15px",
    # Buttons
    "buttonRadius": "50%",
    "buttonSize": "40px",
    # Shadows
    "shadowSmall": "0 2px 6px rgba(16, 24, 40, 0.03)",
    "shadowMedium": "0 4px 20px rgba(102, 126, 234, 0.4)",
    "shadowLarge": "0 10px 40px rgba(0, 0, 0, 0.15)",
    # Transitions
    "transitionSpeed": "0.3s",
}


class WidgetConfig(BaseModel):
    apiUrl: str = "http://localhost:3000"
    theme: str = "modern"
    position: str = "bottom-right"
    autoOpen: bool = False
    welcomeMessage: str = "Hi! I'm your AI assistant. How can I help you today?"
    primaryColor: str = "#667eea"
    secondaryColor: str = "#764ba2"

    @classmethod
    def from_style(cls, style: Dict[str, Any], api_url: Optional[str] = None) -> "WidgetConfig":
        config = cls(
            primaryColor=style.get("primaryColor", cls.model_fields["primaryColor"].default),
            secondaryColor=style.get("secondaryColor", cls.model_fields["secondaryColor"].default),
        )
        url = (api_url or "").rstrip("/")
        if url:
            config.apiUrl = url
        return config


def load_style_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Defaults overlaid with the tokens found in the JSON file at ``path``."""
    config: Dict[str, Any] = dict(DEFAULT_STYLE_CONFIG)
    if not path:
        return config
    try:
        with open(path, encoding="utf-8") as f:
            overrides = json.load(f)
    except FileNotFoundError:
        logger.info(f"No style config at {path}, using defaults")
        return config
    except (OSError, ValueError) as e:
        logger.warning(f"⚠️ Could not read style config {path}: {e}")
        return config
    if isinstance(overrides, dict):
        config.update({k: v for k, v in overrides.items() if v not in (None, "")})
    return config
