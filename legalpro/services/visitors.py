import hashlib
import logging
import re
from typing import Any, Dict, List, Mapping, Optional

import aiohttp

from legalpro_lib.config import get_settings
from legalpro_lib.database import Database, now_iso
from legalpro_lib.error_handler import AppError

logger = logging.getLogger(__name__)

BOT_PATTERNS = [re.compile(pattern, re.IGNORECASE) for pattern in (
    # Search engine crawlers
    r'googlebot', r'bingbot', r'slurp', r'duckduckbot', r'baiduspider',
    r'yandexbot', r'facebookexternalhit', r'twitterbot', r'linkedinbot',
    # SEO and monitoring tools
    r'ahrefsbot', r'semrushbot', r'mj12bot', r'dotbot', r'rogerbot',
    r'screaming frog', r'sitebulb', r'deepcrawl',
    # Headless browsers and automation
    r'phantomjs', r'headlesschrome', r'puppeteer', r'playwright',
    r'selenium', r'webdriver', r'chromedriver',
    # Security scanners
    r'nessus', r'nikto', r'sqlmap', r'w3af', r'burpsuite',
    r'nuclei', r'masscan', r'nmap',
    # Generic
    r'bot|crawler|spider|scraper|parser',
    r'curl|wget|python-requests|go-http-client',
    r'http|fetch|axios|urllib',
)]

SUSPICIOUS_PATTERNS = [
    re.compile(r'^$'),
    re.compile(r'^mozilla/5\.0$', re.IGNORECASE),
    re.compile(r'windows nt 6\.1.*wow64.*rv:11\.0', re.IGNORECASE),
    re.compile(r'compatible;\s*$', re.IGNORECASE),
]

BROWSER_VERSIONS = {
    'Chrome': (re.compile(r'chrome/(\d+)', re.IGNORECASE), 90, 130),
    'Firefox': (re.compile(r'firefox/(\d+)', re.IGNORECASE), 80, 120),
}

CLASSIFICATIONS = (
    (90, 'confirmed_bot'),
    (65, 'likely_bot'),
    (40, 'uncertain'),
    (15, 'likely_human'),
)


def classify(score: int) -> str:
    for threshold, label in CLASSIFICATIONS:
        if score >= threshold:
            return label
    return 'human'


def detect_bot(visitor: Mapping[str, Any], client_ip: str) -> Dict[str, Any]:
    """Score a page view for automated traffic.

    Each signal adds to a raw score. The raw score picks the classification,
    while the reported confidence is capped at 100.
    """
    reasons: List[str] = []
    score = 0

    user_agent = visitor.get('user_agent') or ''
    duration = visitor.get('session_duration') or 0
    page_views = visitor.get('page_views_in_session') or 1

    if duration > 0:
        rate = page_views / duration
        rate_per_minute = page_views / (duration / 60)
        if rate > 2:
            reasons.append(f"Extreme page view rate: {rate:.2f} pages/sec")
            score += 95
        elif rate > 1:
            reasons.append(f"Very high page view rate: {rate:.2f} pages/sec")
            score += 80
        elif rate > 0.5:
            reasons.append(f"High page view rate: {rate:.2f} pages/sec")
            score += 60
        elif rate_per_minute > 30:
            reasons.append(f"High page view rate: {rate_per_minute:.1f} pages/min")
            score += 40

        if page_views > 100 and duration < 300:
            reasons.append(f"Rapid browsing: {page_views} pages in {duration}s")
            score += 70

    if any(pattern.search(user_agent) for pattern in BOT_PATTERNS):
        reasons.append(f"Known bot user agent: {user_agent[:50]}...")
        score += 80

    for browser, (pattern, minimum, maximum) in BROWSER_VERSIONS.items():
        match = pattern.search(user_agent)
        if match:
            version = int(match.group(1))
            if version < minimum or version > maximum:
                reasons.append(f"Invalid {browser} version: {version}")
                score += 50

    if 'Android 10; K' in user_agent or 'Android 9; K' in user_agent:
        reasons.append('Generic Android device identifier')
        score += 40

    if visitor.get('javascript_enabled') is False:
        reasons.append('JavaScript disabled')
        score += 70
    if visitor.get('cookie_enabled') is False:
        reasons.append('Cookies disabled')
        score += 50
    if visitor.get('local_storage_enabled') is False:
        reasons.append('Local storage disabled')
        score += 40
    if visitor.get('mouse_activity') is False and visitor.get('touch_events') is False:
        reasons.append('No mouse or touch activity detected')
        score += 60
    if visitor.get('scroll_behavior') is False:
        reasons.append('No scroll behavior detected')
        score += 30

    if len(visitor.get('canvas_fingerprint') or '') < 10:
        reasons.append('Missing or invalid canvas fingerprint')
        score += 35
    if len(visitor.get('webgl_fingerprint') or '') < 10:
        reasons.append('Missing or invalid WebGL fingerprint')
        score += 30

    if any(pattern.search(user_agent) for pattern in SUSPICIOUS_PATTERNS):
        reasons.append('Suspicious user agent pattern')
        score += 40
    if len(user_agent) < 10:
        reasons.append('Empty or very short user agent')
        score += 60
    if len(user_agent) > 500:
        reasons.append('Unusually long user agent')
        score += 30

    if duration < 1:
        reasons.append('Extremely short session duration')
        score += 30
    elif duration < 2:
        reasons.append('Very short session duration')
        score += 20

    if (visitor.get('time_on_page') or 0) < 0.5 and page_views > 1:
        reasons.append('Extremely short time on page')
        score += 25

    navigation = visitor.get('navigation_flow') or []
    if len(navigation) > 5 and len(set(navigation)) / len(navigation) < 0.3:
        reasons.append('Repetitive navigation pattern')
        score += 20

    if not visitor.get('referrer_url') and visitor.get('page_path') != '/':
        reasons.append('No referrer for deep page visit')
        score += 15

    if not visitor.get('screen_resolution'):
        reasons.append('Missing screen resolution data')
        score += 25
    if not visitor.get('timezone'):
        reasons.append('Missing timezone data')
        score += 20

    if client_ip == 'unknown':
        reasons.append('Unknown IP address')
        score += 30

    return {
        'classification': classify(score),
        'confidence_score': min(score, 100),
        'detection_reasons': reasons
    }


def parse_user_agent(user_agent: Optional[str]) -> Dict[str, str]:
    ua = (user_agent or '').lower()

    device_type = 'desktop'
    if 'mobile' in ua or 'android' in ua or 'iphone' in ua:
        device_type = 'mobile'
    elif 'tablet' in ua or 'ipad' in ua:
        device_type = 'tablet'

    browser = 'unknown'
    for name in ('chrome', 'firefox', 'safari', 'edge'):
        if name in ua:
            browser = name
            break

    return {'device_type': device_type, 'browser': browser}


def client_ip_from_headers(headers: Mapping[str, str]) -> str:
    forwarded = headers.get('X-Forwarded-For')
    if forwarded:
        first = forwarded.split(',')[0].strip()
        if first:
            return first
    return headers.get('X-Real-IP') or 'unknown'


def hash_ip(ip: str, salt: str) -> str:
    return hashlib.sha256(f"{ip}{salt}".encode()).hexdigest()


class VisitorService:
    def __init__(self, database: Database):
        self.db = database
        self.settings = get_settings()
        self.table = 'visitor_analytics'

    async def lookup_location(self, ip: str) -> Dict[str, Any]:
        """Resolve an IP through ipinfo; any failure yields an empty dict"""
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    f"{self.settings.ipinfo_url}/{ip}/json",
                    timeout=aiohttp.ClientTimeout(total=5)
                ) as response:
                    if response.status != 200:
                        logger.info(f"Geolocation API error: {response.status}")
                        return {}
                    data = await response.json()
        except Exception as e:
            logger.error(f"Geolocation lookup failed: {str(e)}")
            return {}

        return {
            'city': data.get('city') or 'Unknown',
            'region': data.get('region') or 'Unknown',
            'country': data.get('country') or 'Unknown',
            'loc': data.get('loc') or '',
            'org': data.get('org') or '',
            'timezone': data.get('timezone') or ''
        }

    async def track(self, visitor: Dict[str, Any], headers: Mapping[str, str]) -> Dict[str, Any]:
        if not visitor.get('session_id'):
            raise AppError("session_id is required", status_code=400)

        client_ip = client_ip_from_headers(headers)
        logger.info(f"Tracking visitor from IP: {client_ip}")

        detection = detect_bot(visitor, client_ip)
        excluded = client_ip in self.settings.excluded_visitor_ips or visitor.get('user_role') == 'admin'
        visitor_hash = hash_ip(client_ip, self.settings.visitor_hash_salt)

        if detection['classification'] == 'confirmed_bot':
            geo = {'country': 'Unknown', 'city': 'Unknown', 'region': 'Unknown'}
        else:
            geo = await self.lookup_location(client_ip)

        logger.info(
            f"Bot detection for {visitor_hash[:12]}: {detection['classification']} "
            f"({detection['confidence_score']})"
        )

        meaningful = detection['classification'] in ('human', 'likely_human')
        existing = self.db.fetch_one(self.table, {'visitor_hash': visitor_hash, 'session_id': visitor['session_id']})
        if existing:
            now = now_iso()
            self.db.update(self.table, {
                'last_visit': now,
                'page_views_count': (existing.get('page_views_count') or 0) + 1,
                'session_duration': visitor.get('session_duration') or existing.get('session_duration'),
                'page_path': visitor.get('page_path'),
                'bot_confidence_score': max(existing.get('bot_confidence_score') or 0, detection['confidence_score']),
                'bot_classification': detection['classification'],
                'detection_reasons': detection['detection_reasons'],
                'meaningful_interaction': meaningful,
                'updated_at': now
            }, {'id': existing['id']})
        else:
            self.db.insert(self.table, {
                'visitor_hash': visitor_hash,
                'country': geo.get('country'),
                'city': geo.get('city'),
                'region': geo.get('region'),
                'user_agent': visitor.get('user_agent'),
                **parse_user_agent(visitor.get('user_agent')),
                'page_path': visitor.get('page_path'),
                'referrer_url': visitor.get('referrer_url'),
                'session_id': visitor['session_id'],
                'session_duration': visitor.get('session_duration') or 0,
                'is_excluded': False,
                'is_excluded_admin': excluded,
                'bot_confidence_score': detection['confidence_score'],
                'bot_classification': detection['classification'],
                'detection_reasons': detection['detection_reasons'],
                'meaningful_interaction': meaningful,
                'screen_resolution': visitor.get('screen_resolution'),
                'timezone': visitor.get('timezone'),
                'language_preferences': visitor.get('language_preferences'),
                'ip_info': {
                    'loc': geo.get('loc'),
                    'org': geo.get('org'),
                    'timezone': geo.get('timezone')
                }
            })

        return {
            'success': True,
            'visitor_hash': visitor_hash,
            'country': geo.get('country'),
            'excluded': excluded,
            'bot_detection': {
                'classification': detection['classification'],
                'confidence_score': detection['confidence_score'],
                'reasons': detection['detection_reasons']
            }
        }
