"""Affiliate data tools exposed to the model.

Importing this module registers every tool with the global registry.
Adding a tool only requires appending one descriptor to ``CATALOG``.
"""

from __future__ import annotations

from stela.core.tool_registry import (
    StaticEndpoint,
    ToolDescriptor,
    ToolParameter,
    path_template,
    registry,
)

_PERSON_ID = ToolParameter(
    name="person_id",
    type="string",
    description="The affiliate account ID",
)


def _account_tool(name: str, description: str, path: str, method: str = "GET") -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description=description,
        endpoint=path_template(path),
        parameters=(_PERSON_ID,),
        method=method,
    )


CATALOG: tuple[ToolDescriptor, ...] = (
    _account_tool(
        "get_account_overview",
        "Retrieves complete account profile and performance summary including name, "
        "current rank/title, GSV (Group Sales Volume), CSV (Customer Sales Volume), "
        "DC-SV (Direct Customer Sales Volume), and team statistics. Use this for general "
        "account questions, \"how am I doing\", performance overview, or when you need to "
        "know the user's current standing.",
        "/api/accounts/{person_id}/overview",
    ),
    _account_tool(
        "get_qualification_status",
        "Retrieves qualification progress showing current rank, requirements for next rank "
        "advancement, which requirements are met/unmet, and months qualified. Use this when "
        "users ask about qualifications, ranking up, requirements, \"what do I need to "
        "qualify\", or promotion criteria.",
        "/api/accounts/{person_id}/qualifications",
    ),
    _account_tool(
        "get_downline_team",
        "Retrieves information about the user's downline team members including their names, "
        "ranks, sales volumes, activity status, and growth rates. Use this when users ask "
        "about their team, downlines, \"who needs help\", team performance, or managing "
        "their organization.",
        "/api/accounts/{person_id}/downline",
    ),
    _account_tool(
        "get_next_best_actions",
        "Retrieves AI-generated personalized recommendations and next best actions for "
        "business growth. Use this when users ask for advice, tips, \"what should I do\", "
        "recommendations, suggestions, or how to improve their business.",
        "/api/accounts/{person_id}/nba",
        method="POST",
    ),
    _account_tool(
        "get_subscription_data",
        "Retrieves subscription and recurring revenue information including total "
        "subscribers, active subscriptions, monthly recurring volume, churn rate, and "
        "breakdown by product. Use this when users ask about subscriptions, recurring "
        "revenue, auto-ship, or subscription growth.",
        "/api/accounts/{person_id}/subscriptions",
    ),
    _account_tool(
        "get_performance_history",
        "Retrieves historical performance data with charts showing trends over multiple "
        "months. Includes sales trends, volume trends, and growth metrics. Use this when "
        "users ask about trends, history, \"how have I been doing\", progress over time, "
        "or want to see charts.",
        "/api/analytics/{person_id}/chart-data",
    ),
    _account_tool(
        "get_segments",
        "Retrieves customer and team member segmentation data showing different groups like "
        "active buyers, at-risk customers, VIPs, and new members. Use this when users ask "
        "about customer segments, who to focus on, or customer categories.",
        "/api/accounts/{person_id}/segments",
    ),
    _account_tool(
        "get_orders",
        "Retrieves recent order history including order dates, amounts, products, and "
        "status. Use this when users ask about orders, recent purchases, sales history, "
        "or order details.",
        "/api/accounts/{person_id}/orders",
    ),
    _account_tool(
        "get_sales_breakdown",
        "Retrieves detailed sales breakdown by category, product, or time period. Use this "
        "when users ask for sales details, product performance, or revenue breakdown.",
        "/api/accounts/{person_id}/sales-breakdown",
    ),
    _account_tool(
        "get_team_network",
        "Retrieves the team network structure showing organizational hierarchy, levels, and "
        "relationships. Use this when users ask about their organization structure, team "
        "tree, or downline hierarchy.",
        "/api/accounts/{person_id}/team-network",
    ),
    ToolDescriptor(
        name="explain_spp_rule",
        description=(
            "Explains a specific Sales Performance Plan (SPP) rule or requirement. Use this "
            "when users ask about SPP rules, compensation plan details, or how specific "
            "requirements work."
        ),
        endpoint=StaticEndpoint("/api/llm/explain-rule"),
        parameters=(
            ToolParameter(
                name="rule_name",
                type="string",
                description="The name of the SPP rule to explain",
            ),
        ),
        method="POST",
    ),
)


for _descriptor in CATALOG:
    registry.register(_descriptor)
