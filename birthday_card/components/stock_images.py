import logging
import requests

logger = logging.getLogger(__name__)

BIRTHDAY_IMAGES = [
    "https://images.unsplash.com/photo-1530103862676-de8c9debad1d?w=600&h=400&fit=crop",
    "https://images.unsplash.com/photo-1558636508-e0db3814bd1d?w=600&h=400&fit=crop",
    "https://images.unsplash.com/photo-1464349095431-e9a21285b5f3?w=600&h=400&fit=crop",
    "https://images.unsplash.com/photo-1513542789411-b6d5d05985c9?w=600&h=400&fit=crop",
    "https://images.unsplash.com/photo-1527529482837-4698179dc6ce?w=600&h=400&fit=crop",
]


class StockImageError(OSError):
    """A stock image could not be downloaded."""


def fetch_stock_image(url: str, timeout: float = 15.0) -> bytes:
    """Download a remote card image so it can be drawn onto the export."""
    headers = {
        "User-Agent": "birthday-card/1.0",
        "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
    }
    try:
        response = requests.get(url, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise StockImageError(f"Fetch failed for {url}: {e}") from e

    logger.debug("[fetch_stock_image] %s -> %s", url, response.status_code)
    if response.status_code != 200:
        raise StockImageError(f"Upstream returned {response.status_code} for {url}")
    return response.content
