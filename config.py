"""
Centralized configuration for the Momentum leaderboard
All constants, channel definitions, color schemes, and business rules
"""

# ============================================
# DATABASE TABLES
# ============================================
TABLES = {
    "daily_stats": "daily_stats",
    # Agent directory, table name as deployed
    "agents": "csr_agent_proflie",
    "profile": "profile",
}

# ============================================
# CHANNEL DEFINITIONS
# ============================================
# key -> database column label and short display name
CHANNELS = {
    "helpdesk": {"column": "Helpdesk ticketing", "label": "Helpdesk", "icon": "🎫"},
    "calls": {"column": "Calls", "label": "Calls", "icon": "📞"},
    "live_chat": {"column": "Live Chat", "label": "Live Chat", "icon": "💬"},
    "support_emails": {"column": "Support/DNS Emails", "label": "Support Emails", "icon": "📧"},
    "social_tickets": {"column": "Social Tickets", "label": "Social", "icon": "📱"},
    "billing_tickets": {"column": "Billing Tickets", "label": "Billing", "icon": "💳"},
    "walk_ins": {"column": "Walk-Ins", "label": "Walk-Ins", "icon": "🚶"},
    "sales_tickets": {"column": "Sales Tickets", "label": "Sales Tickets", "icon": "🛒"},
}

# Channels summed into "total issues" differ between views.
# The sets are kept separate and named until stakeholders settle on one.
CHANNEL_SETS = {
    # Dashboard totals and the stored "Total Issues handled" column
    "intake": [
        "helpdesk", "calls", "live_chat", "support_emails",
        "social_tickets", "billing_tickets", "walk_ins",
    ],
    # Admin leaderboards, performance metrics, agent profiles
    "reporting": [
        "calls", "live_chat", "sales_tickets", "support_emails",
        "billing_tickets", "social_tickets", "walk_ins",
    ],
    # Top issue generator per channel
    "channel_leaders": [
        "helpdesk", "calls", "live_chat", "support_emails",
        "social_tickets", "billing_tickets",
    ],
}

# Metrics selectable on the admin leaderboard
LEADERBOARD_METRICS = ["total", "calls", "live_chat", "sales_tickets", "support_emails"]

TOTAL_METRIC = "total"
TOTAL_COLUMN = "Total Issues handled"

# ============================================
# RECORD FIELDS
# ============================================
# Accepted spellings for the identity columns of a daily stats row
AGENT_NAME_FIELDS = ("Agent", "agent", "agent_name")
AGENT_ID_FIELDS = ("agentid", "agent_id")
DATE_FIELDS = ("Date", "date")
EMAIL_FIELDS = ("Email", "email")
GROUP_FIELDS = ("Group", "group")
TEAM_FIELDS = ("Team Lead Group", "team_lead_group", "team")

# "agent_name" keeps one entry per agent name; stored rows carry per-row ids.
# "agent_id" groups by stable id and falls back to the name when the id is blank.
GROUP_BY = "agent_name"

# ============================================
# TIME WINDOWS
# ============================================
TIME_PERIODS = ["daily", "weekly", "monthly"]

PERIOD_LABELS = {
    "daily": "Today",
    "weekly": "This Week",
    "monthly": "This Month",
}

# "calendar_month" starts on the 1st; "rolling_30_days" is now minus 30 days
MONTHLY_WINDOW_POLICY = "calendar_month"

# Divisor for the per-day average on the performance page
WINDOW_DAYS = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
}

# ============================================
# LEADERBOARD SIZES
# ============================================
LEADERBOARD = {
    "dashboard_top": 10,
    "podium": 3,
    "admin_top": 5,
    "admin_bottom": 5,
    "history_limit": 30,
}

# ============================================
# CACHE & REFRESH SETTINGS (in seconds)
# ============================================
CACHE_TTL = {
    "default": 60,           # 1 minute for daily stats queries
    "static_data": 600,      # 10 minutes for team labels, agent directory
}

REFRESH_INTERVAL_SECONDS = 5 * 60

# ============================================
# COLOR SCHEMES
# ============================================
COLORS = {
    "primary": "#3B82F6",      # Blue
    "secondary": "#10B981",    # Green
    "accent": "#8B5CF6",       # Purple
    "highlight": "#EC4899",    # Pink
    "champion": "#F59E0B",     # Gold - rank 1

    "channels": {
        "helpdesk": "#0EA5E9",
        "calls": "#3B82F6",
        "live_chat": "#10B981",
        "support_emails": "#8B5CF6",
        "social_tickets": "#EC4899",
        "billing_tickets": "#F59E0B",
        "walk_ins": "#64748B",
        "sales_tickets": "#EF4444",
    },
}

RANK_BADGES = {
    1: "👑",
    2: "🏆",
    3: "🥉",
}

# ============================================
# DISPLAY SETTINGS
# ============================================
DISPLAY = {
    "date_format": "%Y-%m-%d",
    "date_display_format": "%b %d, %Y",
    "time_format": "%H:%M:%S",
    "app_title": "MOMENTUM",
}

# ============================================
# AVATARS
# ============================================
AVATAR = {
    "max_upload_bytes": 5 * 1024 * 1024,
    "max_size_px": 200,
    "jpeg_quality": 70,
    "fallback_url": "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}",
}

# ============================================
# ROLES
# ============================================
ROLES = {
    "admin": "Admin",
    "manager": "Team Lead",
    "agent": "Agent",
}

DEFAULT_ROLE = "agent"

# Roles allowed into the admin console when the role gate is on
ADMIN_ROLES = ("admin", "manager")
