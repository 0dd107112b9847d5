"""Presentation of demand reports as HTML, Markdown and outreach email.

Formatting only: every number shown here is already on the
:class:`~signal_engine.report.DemandReport`.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from jinja2 import BaseLoader, Environment

from signal_engine.report import DemandReport
from signal_engine.scoring import classify_tier

TIER_LABELS = {
    "very_high": "Exceptional",
    "high": "Strong",
    "medium": "Moderate",
    "low": "Emerging",
}

# Accent colour of the score; medium and low share the warning colour
TIER_COLOURS = {
    "very_high": "#84CC16",
    "high": "#8B5CF6",
    "medium": "#EF4444",
    "low": "#EF4444",
}


@dataclass
class OutreachEmail:
    subject: str
    html_content: str
    plain_text_content: str


def signal_label(score: float) -> str:
    return TIER_LABELS[classify_tier(score)]


def _gbp(value: float | None) -> str:
    return f"£{(value or 0):.2f}"


def _gbp_k(value: float) -> str:
    return f"£{value / 1000:.1f}k"


def _signed_pct(value: float) -> str:
    return f"{'+' if value > 0 else ''}{value:.1f}%"


def _make_env(autoescape: bool) -> Environment:
    env = Environment(
        loader=BaseLoader(),
        autoescape=autoescape,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["gbp"] = _gbp
    env.filters["gbp_k"] = _gbp_k
    env.filters["signed_pct"] = _signed_pct
    return env


HTML_ENV = _make_env(autoescape=True)
TEXT_ENV = _make_env(autoescape=False)

_REPORT_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #1f2937; background-color: #f9fafb; margin: 0; padding: 0; }
    .container { max-width: 600px; margin: 0 auto; background-color: #ffffff; }
    .header { background: linear-gradient(135deg, #7c3aed 0%, #6d28d9 100%); padding: 32px 20px; text-align: center; color: white; }
    .logo { font-size: 24px; font-weight: 700; margin-bottom: 8px; }
    .content { padding: 32px 20px; }
    .section { margin-bottom: 32px; }
    .section-title { font-size: 18px; font-weight: 600; color: #111827; margin-bottom: 16px; border-bottom: 2px solid #7C3AED; padding-bottom: 8px; }
    .metric-grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; margin-bottom: 16px; }
    .metric-card { background-color: #f3f4f6; padding: 16px; border-radius: 8px; border-left: 4px solid {{ colour }}; }
    .metric-label { font-size: 12px; color: #6b7280; text-transform: uppercase; letter-spacing: 0.5px; margin-bottom: 4px; }
    .metric-value { font-size: 24px; font-weight: 700; color: #111827; }
    .signal-score { text-align: center; padding: 24px; border-radius: 12px; margin-bottom: 24px; background: linear-gradient(135deg, rgba(124, 58, 237, 0.1) 0%, rgba(132, 204, 22, 0.1) 100%); }
    .signal-value { font-size: 48px; font-weight: 700; color: {{ colour }}; margin: 8px 0; }
    .signal-label { font-size: 14px; color: #6b7280; }
    .breakdown-bar { display: flex; height: 24px; border-radius: 4px; overflow: hidden; margin-top: 8px; background-color: #e5e7eb; }
    .breakdown-segment { display: flex; align-items: center; justify-content: center; color: white; font-size: 12px; font-weight: 600; }
    .segment-neat { background-color: #93c5fd; }
    .segment-probably { background-color: #8b5cf6; }
    .segment-money { background-color: #84cc16; }
    .comment { background-color: #f9fafb; padding: 12px; border-radius: 6px; margin-bottom: 12px; border-left: 3px solid #7C3AED; }
    .comment-user { font-weight: 600; color: #111827; font-size: 14px; margin-bottom: 4px; }
    .comment-text { font-size: 14px; color: #4b5563; line-height: 1.5; }
    .recommendation { background-color: #ecfdf5; border-left: 4px solid #84cc16; padding: 12px; margin-bottom: 12px; border-radius: 4px; font-size: 14px; color: #065f46; }
    .theme { display: inline-block; background-color: #f3f4f6; padding: 4px 8px; border-radius: 4px; margin-right: 4px; margin-bottom: 4px; font-size: 12px; }
    .cta-button { display: inline-block; background-color: #7c3aed; color: white; padding: 12px 24px; border-radius: 6px; text-decoration: none; font-weight: 600; margin-top: 16px; font-size: 14px; }
    .footer { background-color: #f3f4f6; padding: 20px; text-align: center; font-size: 12px; color: #6b7280; border-top: 1px solid #e5e7eb; }
"""

REPORT_HTML_TEMPLATE = HTML_ENV.from_string(
    """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{{ r.campaign_title }} · Demand Report</title>
  <style>""" + _REPORT_STYLE + """  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <div class="logo">ProductLobby Demand Report</div>
      <p style="margin: 8px 0; opacity: 0.9;">Market validation &amp; opportunity analysis</p>
    </div>
    <div class="content">
      <div class="section">
        <h1 style="margin: 0 0 8px 0; font-size: 24px; color: #111827;">{{ r.campaign_title }}</h1>
        <p style="margin: 0; color: #6b7280; font-size: 14px;">{{ r.category }} • {{ r.signal_breakdown.total }} supporters</p>
      </div>

      <div class="signal-score">
        <div class="signal-label">Signal Strength Score</div>
        <div class="signal-value">{{ '%.1f' % r.signal_score }}</div>
        <div style="font-size: 13px; color: #6b7280; margin-top: 8px;">{{ label }} market demand</div>
        <div class="breakdown-bar">
        {% if r.signal_breakdown.total > 0 %}
          <div class="breakdown-segment segment-neat" style="width: {{ pct.neat_idea }}%">{{ r.signal_breakdown.neat_idea }}</div>
          <div class="breakdown-segment segment-probably" style="width: {{ pct.probably_buy }}%">{{ r.signal_breakdown.probably_buy }}</div>
          <div class="breakdown-segment segment-money" style="width: {{ pct.take_my_money }}%">{{ r.signal_breakdown.take_my_money }}</div>
        {% endif %}
        </div>
        <div style="font-size: 11px; color: #6b7280; margin-top: 8px;">
          <span style="color: #93c5fd;">●</span> Neat Idea
          <span style="margin-left: 12px; color: #8b5cf6;">●</span> Probably Buy
          <span style="margin-left: 12px; color: #84cc16;">●</span> Take My Money
        </div>
      </div>

      <div class="section">
        <div class="section-title">Market Size &amp; Pricing</div>
        <div class="metric-grid">
          <div class="metric-card"><div class="metric-label">Projected Customers</div><div class="metric-value">{{ r.market_size.projected_customers }}</div></div>
          <div class="metric-card"><div class="metric-label">Projected Revenue</div><div class="metric-value">{{ r.market_size.projected_revenue | gbp_k }}</div></div>
          <div class="metric-card"><div class="metric-label">Median Price</div><div class="metric-value">{{ r.market_size.median_price | gbp }}</div></div>
          <div class="metric-card"><div class="metric-label">90th Percentile</div><div class="metric-value">{{ r.market_size.p90_price | gbp }}</div></div>
        </div>
      </div>

      <div class="section">
        <div class="section-title">Growth Trend</div>
        <div class="metric-grid">
          <div class="metric-card"><div class="metric-label">Last 7 Days</div><div class="metric-value">{{ r.growth.lobbies_last_7_days }}</div></div>
          <div class="metric-card"><div class="metric-label">Growth Rate</div>
            <div class="metric-value" style="color: {{ '#84cc16' if r.growth.growth_rate > 0 else '#ef4444' }};">{{ r.growth.growth_rate | signed_pct }}</div>
          </div>
        </div>
        <div style="padding: 12px; background-color: #f3f4f6; border-radius: 6px; font-size: 14px; color: #4b5563;">
          <strong>Trend:</strong> Campaign is {{ r.growth.trend | capitalize }}
        </div>
      </div>
{% if r.competitor_analysis.count > 0 %}

      <div class="section">
        <div class="section-title">Competitive Landscape</div>
        <div style="padding: 12px; background-color: #f3f4f6; border-radius: 6px; margin-bottom: 12px;">
          <div style="font-size: 14px; color: #4b5563;"><strong>{{ r.competitor_analysis.count }}</strong> competitive products analyzed</div>
          <div style="font-size: 13px; color: #6b7280; margin-top: 4px;">Average price: <strong>{{ r.competitor_analysis.average_price | gbp }}</strong></div>
        </div>
  {% if r.competitor_analysis.common_themes %}
        <div style="font-size: 13px; color: #4b5563;">
          <strong>Common gaps in competitors:</strong>
          <div style="margin-top: 8px;">{% for theme in r.competitor_analysis.common_themes %}<span class="theme">{{ theme }}</span>{% endfor %}</div>
        </div>
  {% endif %}
      </div>
{% endif %}
{% if r.top_comments %}

      <div class="section">
        <div class="section-title">Supporter Feedback</div>
  {% for c in r.top_comments[:3] %}
        <div class="comment">
          <div class="comment-user">{{ c.user }}</div>
          <div class="comment-text">{{ c.content }}</div>
        </div>
  {% endfor %}
      </div>
{% endif %}

      <div class="section">
        <div class="section-title">Recommendations</div>
{% for rec in r.recommendations %}
        <div class="recommendation">{{ rec }}</div>
{% endfor %}
      </div>

      <div style="text-align: center; padding: 20px 0; border-top: 2px solid #e5e7eb;">
        <a href="{{ site_url }}" class="cta-button">View on ProductLobby</a>
      </div>
    </div>
    <div class="footer">
      <p style="margin: 0;">ProductLobby • Consumer-Driven Product Development</p>
      <p style="margin: 8px 0 0 0;">Generated on {{ generated_on }}</p>
    </div>
  </div>
</body>
</html>
"""
)

REPORT_MARKDOWN_TEMPLATE = TEXT_ENV.from_string(
    """# {{ r.campaign_title }}

**Category:** {{ r.category }}
**Total Supporters:** {{ r.signal_breakdown.total }}

---

## Signal Strength: {{ '%.1f' % r.signal_score }}/100

{{ label }} market demand

### Supporter Breakdown
- **Take My Money:** {{ r.signal_breakdown.take_my_money }} ({{ '%.1f' % pct.take_my_money }}%)
- **Probably Buy:** {{ r.signal_breakdown.probably_buy }} ({{ '%.1f' % pct.probably_buy }}%)
- **Neat Idea:** {{ r.signal_breakdown.neat_idea }} ({{ '%.1f' % pct.neat_idea }}%)

---

## Market Size & Pricing

| Metric | Value |
|--------|-------|
| Projected Customers | {{ r.market_size.projected_customers }} |
| Projected Revenue | {{ r.market_size.projected_revenue | gbp_k }} |
| Median Price Point | {{ r.market_size.median_price | gbp }} |
| 90th Percentile Price | {{ r.market_size.p90_price | gbp }} |

---

## Growth Trend

- **Last 7 Days:** {{ r.growth.lobbies_last_7_days }} new supporters
- **Last 30 Days:** {{ r.growth.lobbies_last_30_days }} new supporters
- **Growth Rate:** {{ r.growth.growth_rate | signed_pct }}
- **Trend:** {{ r.growth.trend | capitalize }}

---

{% if r.competitor_analysis.count > 0 %}
## Competitive Landscape

- **Competitors Analyzed:** {{ r.competitor_analysis.count }}
- **Average Competitor Price:** {{ r.competitor_analysis.average_price | gbp }}

{% if r.competitor_analysis.common_themes %}
### Common Gaps in Competitors
{% for theme in r.competitor_analysis.common_themes %}
- {{ theme }}
{% endfor %}

{% endif %}
{% endif %}
{% if r.top_comments %}
## Supporter Feedback

{% for c in r.top_comments[:3] %}
> {{ c.content }}
> *{{ c.user }}*

{% endfor %}
{% endif %}
## Recommendations

{% for rec in r.recommendations %}
- {{ rec }}
{% endfor %}

---

*Report generated on {{ generated_on }} by ProductLobby*
"""
)

OUTREACH_TEXT_TEMPLATE = TEXT_ENV.from_string(
    """Hi {{ brand_name }},

We've identified a significant market opportunity that aligns with your product strategy.

CAMPAIGN: {{ r.campaign_title }}
CATEGORY: {{ r.category }}
SUPPORTERS: {{ r.signal_breakdown.total }}

MARKET OPPORTUNITY
Signal Score: {{ '%.1f' % r.signal_score }}/100 ({{ label }})
Projected Customers: {{ r.market_size.projected_customers }}
Projected Revenue: {{ r.market_size.projected_revenue | gbp_k }}
Median Price: {{ r.market_size.median_price | gbp }}

BUYER COMMITMENT
Take My Money: {{ r.signal_breakdown.take_my_money }} ({{ '%.1f' % pct.take_my_money }}%)
Probably Buy: {{ r.signal_breakdown.probably_buy }}
Neat Idea: {{ r.signal_breakdown.neat_idea }}

GROWTH TREND
Last 7 Days: {{ r.growth.lobbies_last_7_days }} new supporters
Momentum: {{ r.growth.growth_rate | signed_pct }} ({{ r.growth.trend }})

VIEW FULL REPORT & COMMUNITY
{{ campaign_url }}

NEXT STEPS
1. Review the campaign and supporter feedback
2. Schedule a call to discuss market fit
3. Explore partnership or development opportunities

The ProductLobby community has validated strong market demand. Now is the time to act.

Best regards,
ProductLobby Team

---
Questions? Reply to this email or visit our website.
"""
)

OUTREACH_HTML_TEMPLATE = HTML_ENV.from_string(
    """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <style>
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', sans-serif; line-height: 1.6; color: #1f2937; background-color: #f9fafb; margin: 0; padding: 0; }
    .container { max-width: 600px; margin: 0 auto; background-color: #ffffff; }
    .header { background: linear-gradient(135deg, #7c3aed 0%, #6d28d9 100%); padding: 40px 20px; text-align: center; color: white; }
    .header-title { font-size: 28px; font-weight: 700; margin: 0 0 8px 0; letter-spacing: -0.5px; }
    .header-subtitle { font-size: 14px; opacity: 0.9; margin: 0; }
    .content { padding: 32px 24px; }
    .opportunity-section { padding: 20px; border-radius: 8px; margin-bottom: 24px; border-left: 4px solid #7c3aed; background: linear-gradient(135deg, rgba(124, 58, 237, 0.05) 0%, rgba(132, 204, 22, 0.05) 100%); }
    .opportunity-title { font-size: 12px; color: #6b7280; text-transform: uppercase; letter-spacing: 0.5px; margin-bottom: 12px; font-weight: 600; }
    .campaign-title { font-size: 20px; font-weight: 700; color: #111827; margin-bottom: 12px; }
    .campaign-meta { font-size: 13px; color: #6b7280; margin-bottom: 16px; }
    .metrics-grid { display: grid; grid-template-columns: 1fr 1fr; gap: 12px; }
    .metric { background-color: #ffffff; padding: 12px; border-radius: 6px; border: 1px solid #e5e7eb; }
    .metric-label { font-size: 11px; color: #6b7280; text-transform: uppercase; letter-spacing: 0.5px; margin-bottom: 4px; }
    .metric-value { font-size: 18px; font-weight: 700; color: #7c3aed; }
    .section { margin-bottom: 24px; }
    .section-title { font-size: 14px; font-weight: 600; color: #111827; margin-bottom: 12px; padding-bottom: 8px; border-bottom: 2px solid #e5e7eb; }
    .stat-row { display: flex; justify-content: space-between; padding: 8px 0; border-bottom: 1px solid #f3f4f6; }
    .stat-label { color: #6b7280; }
    .stat-value { font-weight: 600; color: #111827; }
    .next-steps { background-color: #f0fdf4; border-left: 4px solid #84cc16; padding: 16px; border-radius: 6px; margin-bottom: 24px; color: #065f46; font-size: 13px; }
    .cta-container { margin: 32px 0; text-align: center; }
    .cta-button { display: inline-block; background: linear-gradient(135deg, #7c3aed 0%, #6d28d9 100%); color: white; padding: 14px 32px; border-radius: 8px; text-decoration: none; font-weight: 600; font-size: 15px; }
    .footer { background-color: #f3f4f6; padding: 24px; text-align: center; font-size: 12px; color: #6b7280; border-top: 1px solid #e5e7eb; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">
      <div class="header-title">Market Opportunity Alert</div>
      <div class="header-subtitle">A validated product opportunity in your market</div>
    </div>
    <div class="content">
      <p>Hi <strong>{{ brand_name }}</strong>,</p>
      <p>Our community has identified and validated strong market demand for a product opportunity that aligns with your brand. Below is a summary of the opportunity.</p>

      <div class="opportunity-section">
        <div class="opportunity-title">Campaign Overview</div>
        <div class="campaign-title">{{ r.campaign_title }}</div>
        <div class="campaign-meta"><strong>Category:</strong> {{ r.category }} | <strong>Supporters:</strong> {{ r.signal_breakdown.total }}</div>
        <div class="metrics-grid">
          <div class="metric"><div class="metric-label">Signal Score</div><div class="metric-value">{{ '%.1f' % r.signal_score }}</div></div>
          <div class="metric"><div class="metric-label">Trend</div>
            <div class="metric-value" style="color: {{ '#84cc16' if r.growth.trend in ('accelerating', 'growing') else '#6b7280' }};">{{ r.growth.trend | capitalize }}</div>
          </div>
        </div>
      </div>

      <div class="section">
        <div class="section-title">Market Potential</div>
        <div class="metrics-grid" style="margin-bottom: 16px;">
          <div class="metric"><div class="metric-label">Projected Customers</div><div class="metric-value">{{ r.market_size.projected_customers }}</div></div>
          <div class="metric"><div class="metric-label">Projected Revenue</div><div class="metric-value">{{ r.market_size.projected_revenue | gbp_k }}</div></div>
        </div>
        <div class="stat-row"><span class="stat-label">Median Price Point</span><span class="stat-value">{{ r.market_size.median_price | gbp }}</span></div>
        <div class="stat-row"><span class="stat-label">90th Percentile</span><span class="stat-value">{{ r.market_size.p90_price | gbp }}</span></div>
      </div>

      <div class="section">
        <div class="section-title">Buyer Commitment Breakdown</div>
        <div class="stat-row"><span class="stat-label">Take My Money (Ready to buy)</span><span class="stat-value">{{ r.signal_breakdown.take_my_money }} ({{ '%.0f' % pct.take_my_money }}%)</span></div>
        <div class="stat-row"><span class="stat-label">Probably Buy</span><span class="stat-value">{{ r.signal_breakdown.probably_buy }} ({{ '%.0f' % pct.probably_buy }}%)</span></div>
        <div class="stat-row"><span class="stat-label">Neat Idea</span><span class="stat-value">{{ r.signal_breakdown.neat_idea }} ({{ '%.0f' % pct.neat_idea }}%)</span></div>
      </div>

      <div class="section">
        <div class="section-title">Growth Momentum</div>
        <div class="stat-row"><span class="stat-label">New Supporters (Last 7 Days)</span><span class="stat-value">{{ r.growth.lobbies_last_7_days }}</span></div>
        <div class="stat-row"><span class="stat-label">Growth Rate</span>
          <span class="stat-value" style="color: {{ '#84cc16' if r.growth.growth_rate > 0 else '#6b7280' }};">{{ r.growth.growth_rate | signed_pct }}</span>
        </div>
      </div>

      <div class="next-steps">
        <strong>Next Steps</strong>
        <ul>
          <li>Review the full campaign and community feedback</li>
          <li>Assess market fit with your product roadmap</li>
          <li>Explore partnership or development opportunities</li>
        </ul>
      </div>

      <div class="cta-container">
        <a href="{{ campaign_url }}" class="cta-button">View Campaign &amp; Community</a>
      </div>
      <p style="font-size: 13px; color: #6b7280; text-align: center; margin-top: 24px;">
        Questions about this opportunity? <a href="mailto:hello@productlobby.com" style="color: #7c3aed; text-decoration: none; font-weight: 600;">Contact our team</a>
      </p>
    </div>
    <div class="footer">
      <p><strong>ProductLobby</strong></p>
      <p>Consumer-Driven Product Development Platform</p>
      <p style="margin-top: 16px; border-top: 1px solid #d1d5db; padding-top: 12px;">© {{ year }} ProductLobby. All rights reserved.</p>
    </div>
  </div>
</body>
</html>
"""
)


def _context(report: DemandReport) -> dict:
    return {
        "r": report,
        "label": signal_label(report.signal_score),
        "colour": TIER_COLOURS[classify_tier(report.signal_score)],
        "pct": report.signal_breakdown.percentages(),
    }


def format_report_as_html(
    report: DemandReport, generated_at: datetime, site_url: str = "https://productlobby.com",
) -> str:
    return REPORT_HTML_TEMPLATE.render(
        **_context(report), site_url=site_url, generated_on=generated_at.strftime("%Y-%m-%d"),
    )


def format_report_as_markdown(report: DemandReport, generated_at: datetime) -> str:
    return REPORT_MARKDOWN_TEMPLATE.render(**_context(report), generated_on=generated_at.strftime("%Y-%m-%d"))


def format_outreach_email(
    brand_name: str, report: DemandReport, campaign_url: str, year: int,
) -> OutreachEmail:
    """Subject, HTML body and plain-text body of a brand outreach email."""
    ctx = {**_context(report), "brand_name": brand_name, "campaign_url": campaign_url, "year": year}
    return OutreachEmail(
        subject=(
            f'Market Opportunity: "{report.campaign_title}" – '
            f"{report.signal_breakdown.total}+ Supporters"
        ),
        html_content=OUTREACH_HTML_TEMPLATE.render(**ctx),
        plain_text_content=OUTREACH_TEXT_TEMPLATE.render(**ctx),
    )
