"""
HLS playlist rewriting - route every media/key URI back through the proxy
"""
import re

from .http_utils import encode_uri_component, resolve_url

LINE_SPLIT = re.compile(r"\r?\n")
URI_ATTRIBUTE = re.compile(r'URI="([^"]+)"', re.IGNORECASE)


def build_resource_url(proxy_base_url: str, absolute_url: str) -> str:
    return f"{proxy_base_url}?resource={encode_uri_component(absolute_url)}"


def _rewrite_tag_line(line: str, base_url: str, proxy_base_url: str) -> str:
    def _replace(match: "re.Match[str]") -> str:
        try:
            resolved = resolve_url(match.group(1), base_url)
        except ValueError:
            return match.group(0)
        return f'URI="{build_resource_url(proxy_base_url, resolved)}"'

    return URI_ATTRIBUTE.sub(_replace, line)


def rewrite_playlist(playlist: str, base_url: str, proxy_base_url: str) -> str:
    """
    Rewrite an HLS playlist so the player fetches everything via the proxy.

    Args:
        playlist: manifest text as returned by the camera
        base_url: absolute URL the manifest was fetched from
        proxy_base_url: public URL of the camera's proxy endpoint

    Returns:
        Manifest with the same number of lines, segment lines and URI="..."
        attributes replaced by `<proxy_base_url>?resource=<encoded url>`.
    """
    rewritten = []
    for line in LINE_SPLIT.split(playlist):
        trimmed = line.strip()

        if not trimmed:
            rewritten.append(line)
        elif trimmed.startswith("#"):
            if 'URI="' not in line.upper():
                rewritten.append(line)
            else:
                rewritten.append(_rewrite_tag_line(line, base_url, proxy_base_url))
        else:
            try:
                resolved = resolve_url(trimmed, base_url)
            except ValueError:
                rewritten.append(line)
            else:
                rewritten.append(build_resource_url(proxy_base_url, resolved))

    return "\n".join(rewritten)
