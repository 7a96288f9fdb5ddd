"""Lookup tables that decide what counts as a "result" on Meta Ads.

Campaign objectives and ad set optimization goals are closed enums with an
explicit UNKNOWN member; every table is read-only and keyed by those enums.
Action types stay plain lower-case strings because Meta keeps adding new ones.
No I/O in this file -- pure definitions.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


# =============================================================================
# Enums
# =============================================================================

class OptimizationGoal(str, Enum):
    """Canonical ad set optimization goals (after alias collapsing)."""
    PURCHASE = "PURCHASE"
    LEAD_GENERATION = "LEAD_GENERATION"
    MESSAGES = "MESSAGES"
    OUTCOME_SALES = "OUTCOME_SALES"
    LANDING_PAGE_VIEWS = "LANDING_PAGE_VIEWS"
    LINK_CLICKS = "LINK_CLICKS"
    OUTCOME_ENGAGEMENT = "OUTCOME_ENGAGEMENT"
    POST_ENGAGEMENT = "POST_ENGAGEMENT"
    BRAND_AWARENESS = "BRAND_AWARENESS"
    OUTCOME_REACH = "OUTCOME_REACH"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def lookup(cls, value: Optional[str]) -> "OptimizationGoal":
        """Map an already-normalized goal string to its member, or UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class CampaignObjective(str, Enum):
    """Canonical campaign objectives that carry a result rule."""
    OUTCOME_LEADS = "OUTCOME_LEADS"
    LEAD_GENERATION = "LEAD_GENERATION"
    OUTCOME_ENGAGEMENT = "OUTCOME_ENGAGEMENT"
    ENGAGEMENT = "ENGAGEMENT"
    MESSAGES = "MESSAGES"
    OUTCOME_SALES = "OUTCOME_SALES"
    PURCHASE = "PURCHASE"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def lookup(cls, value: Optional[str]) -> "CampaignObjective":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class ResultMode(str, Enum):
    """How a rule turns its action types into one quantity."""
    FIRST = "first"  # first type with a positive quantity is the whole result
    SUM = "sum"      # every positive type contributes


@dataclass(frozen=True)
class ObjectiveResultRule:
    label: str
    action_types: Tuple[str, ...]
    mode: ResultMode = ResultMode.FIRST


# =============================================================================
# Action types
# =============================================================================

GRAPH_BASE_URL = "https://graph.facebook.com/v24.0"

DEFAULT_ATTRIBUTION_WINDOWS: Tuple[str, ...] = ("7d_click", "1d_click", "7d_view", "1d_view")

LEAD_ACTION_TYPES = frozenset({
    "lead",
    "leadgen",
    "leadgen.other",
    "leadgen_qualified_lead",
    "leadgen.qualified_lead",
    "omni_lead",
    "onsite_conversion.lead_grouped",
    "onsite_conversion.lead",
    "onsite_conversion.post_save",
    "offsite_conversion.fb_pixel_lead",
    "onsite_web_lead",
    "offsite_content_view_add_meta_leads",
    "submit_application",
    "submitted_application",
    "contact",
})

ACTION_TYPE_LABELS: Mapping[str, str] = MappingProxyType({
    # Leads
    "lead": "Leads",
    "leadgen": "Leads",
    "leadgen.other": "Leads",
    "leadgen_qualified_lead": "Qualified leads",
    "leadgen.qualified_lead": "Qualified leads",
    "omni_lead": "Omni leads",
    "onsite_conversion.lead_grouped": "Leads",
    "onsite_conversion.lead": "Leads",
    "onsite_conversion.post_save": "Saves",
    "offsite_conversion.fb_pixel_lead": "Leads (pixel)",
    "onsite_web_lead": "Leads (website)",
    "offsite_content_view_add_meta_leads": "Meta leads",
    "submit_application": "Applications submitted",
    "submitted_application": "Submitted applications",
    "contact": "Contacts",

    # Messaging
    "onsite_conversion.whatsapp_message": "WhatsApp conversations",
    "onsite_conversion.whatsapp_first_reply": "WhatsApp replies",
    "onsite_conversion.whatsapp_inbox_reply": "WhatsApp replies",
    "whatsapp_link_click": "Clicks to WhatsApp",
    "whatsapp_conversion": "WhatsApp conversations",
    "onsite_conversion.messaging_first_reply": "Messaging conversations",
    "onsite_conversion.messaging_conversation_started_7d": "Conversations started",
    "onsite_conversion.total_messaging_connection": "Messaging connections",
    "messaging_conversation_started_7d": "Conversations started",
    "messaging_connection": "Messaging connections",
    "onsite_conversion.messaging_total_conversation_starters": "Messaging conversations",
    "messages_sent": "Messages sent",
    "messaging_new_conversation": "Conversations started",
    "omni_opt_in": "Opt-ins",
    "omni_primary_message": "Primary messages",

    # Commerce
    "purchase": "Purchases",
    "offsite_conversion.fb_pixel_purchase": "Purchases (pixel)",
    "initiate_checkout": "Checkouts initiated",
    "checkout_initiated": "Checkouts initiated",
    "add_to_cart": "Adds to cart",
    "add_payment_info": "Payment info added",
    "add_to_wishlist": "Adds to wishlist",
    "conversion": "Conversions",
    "website_conversion": "Website conversions",
    "complete_registration": "Registrations completed",
    "registration": "Registrations",
    "start_trial": "Trials started",
    "subscribe": "Subscriptions",
    "schedule": "Appointments scheduled",

    # Traffic
    "link_click": "Link clicks",
    "outbound_click": "Outbound clicks",
    "landing_page_view": "Landing page views",
    "view_content": "Content views",
})

# Tried in order after the goal-specific candidates when picking an ad set's
# official result.
FALLBACK_RESULT_ACTION_TYPES: Tuple[str, ...] = (
    "purchase",
    "offsite_conversion.fb_pixel_purchase",
    "value",
    "lead",
    "leadgen",
    "onsite_conversion.messaging_first_reply",
    "onsite_conversion.messaging_conversation_started_7d",
    "onsite_conversion.total_messaging_connection",
    "messaging_conversation_started_7d",
    "messaging_connection",
    "landing_page_view",
    "omni_landing_page_view",
    "link_click",
    "outbound_click",
    "post_engagement",
    "page_engagement",
    "view_content",
    "onsite_web_lead",
    "offsite_content_view_add_meta_leads",
)


# =============================================================================
# Optimization goals
# =============================================================================

OPTIMIZATION_GOAL_ALIASES: Mapping[str, OptimizationGoal] = MappingProxyType({
    "OFFSITE_CONVERSIONS": OptimizationGoal.PURCHASE,
    "CONVERSIONS": OptimizationGoal.PURCHASE,
    "PURCHASE_CONVERSIONS": OptimizationGoal.PURCHASE,
    "VALUE": OptimizationGoal.PURCHASE,
    "OUTCOME_PURCHASE": OptimizationGoal.PURCHASE,
    "PURCHASES": OptimizationGoal.PURCHASE,
    "PURCHASE": OptimizationGoal.PURCHASE,

    "OUTCOME_LEADS": OptimizationGoal.LEAD_GENERATION,
    "OUTCOME_LEAD_GENERATION": OptimizationGoal.LEAD_GENERATION,
    "LEADS": OptimizationGoal.LEAD_GENERATION,
    "LEAD": OptimizationGoal.LEAD_GENERATION,
    "LEAD_GENERATION": OptimizationGoal.LEAD_GENERATION,

    "OUTCOME_MESSAGES": OptimizationGoal.MESSAGES,
    "MESSAGING_APPOINTMENT_CONVERSION": OptimizationGoal.MESSAGES,
    "MESSAGING_PURCHASE_CONVERSION": OptimizationGoal.MESSAGES,
    "CONVERSATIONS": OptimizationGoal.MESSAGES,
    "WHATSAPP_MESSAGE": OptimizationGoal.MESSAGES,
    "REPLIES": OptimizationGoal.MESSAGES,
    "MESSAGES": OptimizationGoal.MESSAGES,

    "OUTCOME_SALES": OptimizationGoal.OUTCOME_SALES,
    "SALES": OptimizationGoal.OUTCOME_SALES,

    "OUTCOME_TRAFFIC": OptimizationGoal.LANDING_PAGE_VIEWS,
    "TRAFFIC": OptimizationGoal.LANDING_PAGE_VIEWS,
    "LANDING_PAGE_VIEWS": OptimizationGoal.LANDING_PAGE_VIEWS,

    "LINK_CLICKS": OptimizationGoal.LINK_CLICKS,

    "OUTCOME_ENGAGEMENT": OptimizationGoal.OUTCOME_ENGAGEMENT,
    "ENGAGEMENT": OptimizationGoal.OUTCOME_ENGAGEMENT,
    "POST_ENGAGEMENT": OptimizationGoal.POST_ENGAGEMENT,

    "BRAND_AWARENESS": OptimizationGoal.BRAND_AWARENESS,
    "OUTCOME_AWARENESS": OptimizationGoal.BRAND_AWARENESS,
    "AWARENESS": OptimizationGoal.BRAND_AWARENESS,
})

_ENGAGEMENT_ACTIONS = ("post_engagement", "page_engagement", "post_interaction_gross")

OPTIMIZATION_GOAL_TO_ACTION_TYPES: Mapping[OptimizationGoal, Tuple[str, ...]] = MappingProxyType({
    OptimizationGoal.BRAND_AWARENESS: ("impressions", "reach"),
    OptimizationGoal.LEAD_GENERATION: (
        "lead",
        "leadgen",
        "leadgen.other",
        "leadgen_qualified_lead",
        "leadgen.qualified_lead",
        "omni_lead",
        "onsite_conversion.lead",
        "onsite_conversion.lead_grouped",
        "onsite_conversion.post_save",
        "offsite_conversion.fb_pixel_lead",
        "onsite_web_lead",
        "offsite_content_view_add_meta_leads",
    ),
    OptimizationGoal.MESSAGES: (
        "onsite_conversion.messaging_conversation_started_7d",
        "messaging_conversation_started_7d",
        "onsite_conversion.messaging_total_conversation_starters",
        "onsite_conversion.total_messaging_connection",
        "onsite_conversion.messaging_first_reply_conversation",
        "onsite_conversion.whatsapp_first_reply",
        "whatsapp_conversion",
        "onsite_conversion.whatsapp_message",
    ),
    OptimizationGoal.PURCHASE: (
        "purchase",
        "offsite_conversion.fb_pixel_purchase",
        "conversion",
    ),
    OptimizationGoal.LANDING_PAGE_VIEWS: (
        "landing_page_view",
        "omni_landing_page_view",
        "view_content",
    ),
    OptimizationGoal.LINK_CLICKS: ("link_click", "outbound_click"),
    OptimizationGoal.POST_ENGAGEMENT: _ENGAGEMENT_ACTIONS,
    OptimizationGoal.OUTCOME_ENGAGEMENT: _ENGAGEMENT_ACTIONS,
    OptimizationGoal.OUTCOME_REACH: ("impressions", "reach"),
    OptimizationGoal.OUTCOME_SALES: (
        "purchase",
        "offsite_conversion.fb_pixel_purchase",
        "offsite_content_view_add_meta_leads",
        "view_content",
        "initiate_checkout",
        "checkout_initiated",
        "add_to_cart",
    ),
    OptimizationGoal.UNKNOWN: (),
})


# =============================================================================
# Campaign objectives
# =============================================================================

LEAD_RESULT_ACTION_TYPES: Tuple[str, ...] = (
    "lead",
    "leadgen",
    "leadgen.other",
    "onsite_conversion.lead",
    "onsite_web_lead",
    "offsite_conversion.fb_pixel_lead",
)

MESSAGE_RESULT_ACTION_TYPES: Tuple[str, ...] = (
    "onsite_conversion.messaging_conversation_started_7d",
    "messaging_conversation_started_7d",
    "onsite_conversion.messaging_first_reply",
)

SALES_RESULT_ACTION_TYPES: Tuple[str, ...] = (
    "purchase",
    "offsite_conversion.fb_pixel_purchase",
)

CAMPAIGN_OBJECTIVE_ALIASES: Mapping[str, CampaignObjective] = MappingProxyType({
    "OUTCOME_LEAD_GENERATION": CampaignObjective.OUTCOME_LEADS,
    "OUTCOME_LEADS": CampaignObjective.OUTCOME_LEADS,
    "LEADS": CampaignObjective.OUTCOME_LEADS,
    "LEAD": CampaignObjective.OUTCOME_LEADS,
    "LEAD_GENERATION": CampaignObjective.LEAD_GENERATION,

    "OUTCOME_ENGAGEMENT": CampaignObjective.OUTCOME_ENGAGEMENT,
    "ENGAGEMENT": CampaignObjective.ENGAGEMENT,
    "OUTCOME_MESSAGES": CampaignObjective.MESSAGES,
    "MESSENGER": CampaignObjective.MESSAGES,
    "MESSAGING": CampaignObjective.MESSAGES,
    "MESSAGES": CampaignObjective.MESSAGES,

    "OUTCOME_SALES": CampaignObjective.OUTCOME_SALES,
    "SALES": CampaignObjective.OUTCOME_SALES,
    "OUTCOME_PURCHASE": CampaignObjective.OUTCOME_SALES,
    "PURCHASE": CampaignObjective.PURCHASE,
})

_LEADS_RULE = ObjectiveResultRule("Leads", LEAD_RESULT_ACTION_TYPES, ResultMode.FIRST)
_MESSAGES_RULE = ObjectiveResultRule("Conversations started", MESSAGE_RESULT_ACTION_TYPES, ResultMode.FIRST)
_SALES_RULE = ObjectiveResultRule("Sales", SALES_RESULT_ACTION_TYPES, ResultMode.FIRST)

OBJECTIVE_RESULT_RULES: Mapping[CampaignObjective, ObjectiveResultRule] = MappingProxyType({
    CampaignObjective.OUTCOME_LEADS: _LEADS_RULE,
    CampaignObjective.LEAD_GENERATION: _LEADS_RULE,
    CampaignObjective.OUTCOME_ENGAGEMENT: _MESSAGES_RULE,
    CampaignObjective.ENGAGEMENT: _MESSAGES_RULE,
    CampaignObjective.MESSAGES: _MESSAGES_RULE,
    CampaignObjective.OUTCOME_SALES: _SALES_RULE,
    CampaignObjective.PURCHASE: _SALES_RULE,
})
