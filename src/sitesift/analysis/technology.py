"""
Technology fingerprinting from page markup and response headers.
"""

from __future__ import annotations

import re
from typing import Dict, List, Mapping, Pattern, Tuple

from sitesift.protocols import TechnologyReport

_Signatures = Dict[str, Tuple[Pattern[str], ...]]


def _signatures(table: Dict[str, Tuple[str, ...]]) -> _Signatures:
    return {name: tuple(re.compile(p, re.IGNORECASE) for p in patterns) for name, patterns in table.items()}


CMS_SIGNATURES = _signatures(
    {
        "WordPress": (r"wp-content", r"wp-includes", r'<meta name="generator" content="WordPress'),
        "Drupal": (r"sites/default/files", r"misc/drupal", r'<meta name="generator" content="Drupal'),
        "Joomla": (r"media/system", r"templates/.*/css", r'<meta name="generator" content="Joomla'),
        "Shopify": (r"cdn\.shopify\.com", r"shopify-analytics"),
        "Magento": (r"skin/frontend", r"js/mage"),
        "Wix": (r"static\.wixstatic\.com", r"wix\.com"),
    }
)

FRAMEWORK_SIGNATURES = _signatures(
    {
        "React": (r"react", r"__REACT"),
        "Vue.js": (r"vue\.js", r"__VUE"),
        "Angular": (r"angular", r"ng-"),
        "jQuery": (r"jquery", r"\$\("),
        "Bootstrap": (r"bootstrap",),
        "Tailwind": (r"tailwind",),
    }
)

ANALYTICS_SIGNATURES = _signatures(
    {
        "Google Analytics": (r"google-analytics\.com", r"gtag\(", r"ga\("),
        "Facebook Pixel": (r"fbevents\.js", r"facebook\.net"),
        "Hotjar": (r"hotjar\.com",),
        "Mixpanel": (r"mixpanel",),
        "Adobe Analytics": (r"omniture", r"adobe\.com.*analytics"),
    }
)

ECOMMERCE_SIGNATURES = _signatures(
    {
        "WooCommerce": (r"woocommerce", r"wc-"),
        "Shopify": (r"shopify", r"shop\.js"),
        "Magento": (r"magento", r"mage/"),
        "PrestaShop": (r"prestashop",),
        "BigCommerce": (r"bigcommerce",),
    }
)

CDN_HEADERS: Dict[str, Tuple[str, ...]] = {
    "Cloudflare": ("cf-ray", "cf-cache-status"),
    "Amazon CloudFront": ("x-amz-cf-id",),
    "MaxCDN": ("x-cache",),
    "KeyCDN": ("x-edge-location",),
    "Fastly": ("fastly-debug-digest",),
}

SECURITY_HEADERS = {
    "hsts": "strict-transport-security",
    "csp": "content-security-policy",
    "xframe": "x-frame-options",
    "xss": "x-xss-protection",
    "content_type": "x-content-type-options",
}

UNKNOWN_CMS = "Unknown"
UNKNOWN_SERVER = "Unknown"
NO_CDN = "None detected"


def _matching(html: str, signatures: _Signatures) -> List[str]:
    return [name for name, patterns in signatures.items() if any(p.search(html) for p in patterns)]


def detect_cms(html: str) -> str:
    found = _matching(html, CMS_SIGNATURES)
    return found[0] if found else UNKNOWN_CMS


def detect_frameworks(html: str) -> List[str]:
    return _matching(html, FRAMEWORK_SIGNATURES)


def detect_analytics(html: str) -> List[str]:
    return _matching(html, ANALYTICS_SIGNATURES)


def detect_ecommerce(html: str) -> List[str]:
    return _matching(html, ECOMMERCE_SIGNATURES)


def detect_cdn(headers: Mapping[str, str]) -> str:
    for cdn, names in CDN_HEADERS.items():
        if any(headers.get(name) for name in names):
            return cdn
    return NO_CDN


def detect_security(headers: Mapping[str, str]) -> Dict[str, bool]:
    return {key: bool(headers.get(name)) for key, name in SECURITY_HEADERS.items()}


def _confidence(report: TechnologyReport) -> int:
    signals = (
        report.cms != UNKNOWN_CMS,
        bool(report.frameworks),
        bool(report.analytics),
        report.server != UNKNOWN_SERVER,
        report.cdn != NO_CDN,
    )
    return 20 * sum(signals)


def _recommendations(report: TechnologyReport) -> List[str]:
    recommendations = []
    if report.cms == UNKNOWN_CMS:
        recommendations.append("Consider using a popular CMS for better maintainability")
    if not report.analytics:
        recommendations.append("Add analytics tools to track user behavior")
    if not report.security.get("hsts"):
        recommendations.append("Enable HSTS for better security")
    if report.cdn == NO_CDN:
        recommendations.append("Consider using a CDN for better performance")
    return recommendations


def detect_technology(url: str, html: str, headers: Mapping[str, str]) -> TechnologyReport:
    """
    Fingerprint the stack behind a page.

    Header lookups are case-insensitive regardless of the mapping passed in.
    """
    lowered = {name.lower(): value for name, value in headers.items()}

    report = TechnologyReport(
        url=url,
        cms=detect_cms(html),
        frameworks=detect_frameworks(html),
        analytics=detect_analytics(html),
        ecommerce=detect_ecommerce(html),
        cdn=detect_cdn(lowered),
        server=lowered.get("server") or UNKNOWN_SERVER,
        security=detect_security(lowered),
    )
    report.confidence = _confidence(report)
    report.recommendations = _recommendations(report)
    return report
