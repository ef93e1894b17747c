"""
Export Engine: renders goal collections as JSON, Markdown, CSV or PDF-ready HTML.
Read-only over its input; given the same `now` the output is byte-identical.
"""

import csv
import html
import io
import logging
import re
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Union

from legianos.config import settings
from legianos.errors import GoalExportError
from legianos.models import (
    ExportFormat,
    Goal,
    GoalProfile,
    GoalStatus,
    GoalType,
    MilestoneStatus,
    as_utc,
    calculate_goal_progress,
    format_goal_duration,
    utcnow,
)
from legianos.schemas.goals import ExportMetadata, ExportOptions, ExportResult

logger = logging.getLogger("legianos")

PROFILE_VERSION = "1.0"
DEFAULT_SUBTITLE = "Generated by LegianOS Goal Management System"

FILE_TYPES: Dict[ExportFormat, Tuple[str, str]] = {
    ExportFormat.JSON: ("json", "application/json"),
    ExportFormat.MARKDOWN: ("md", "text/markdown"),
    ExportFormat.CSV: ("csv", "text/csv"),
    ExportFormat.PDF: ("html", "text/html"),
}

CSV_HEADERS = [
    "Title", "Type", "Priority", "Status", "Start Date", "End Date",
    "Target Value", "Current Value", "Unit", "Progress %",
    "Motivation", "Accountability", "Tags",
]
CSV_MILESTONE_HEADERS = ["Milestones Count", "Completed Milestones"]

STATUS_ICONS = {
    MilestoneStatus.COMPLETED: "✅",
    MilestoneStatus.IN_PROGRESS: "🔄",
}
DEFAULT_STATUS_ICON = "⭕"


# ==========================================
# SHARED HELPERS
# ==========================================

def _date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")


def _number(value: Optional[float]) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _count(n: int, noun: str) -> str:
    return f"{n} {noun}{'' if n == 1 else 's'}"


def _profile_title(options: ExportOptions) -> str:
    if options.customization.title:
        return options.customization.title
    name = options.user_context.name if options.user_context else None
    return f"{name}'s Goal Profile" if name else "Goal Profile"


def _slug(title: str) -> str:
    return re.sub(r"[^\w-]", "", re.sub(r"\s+", "-", title.lower()))


def progress_bar(progress: float, length: int = 20) -> str:
    filled = round((progress / 100) * length)
    return "█" * filled + "░" * (length - filled) + f" {progress:.1f}%"


def generate_insights(goals: List[Goal]) -> List[str]:
    insights: List[str] = []
    if not goals:
        return insights

    type_counts = Counter(goal.type for goal in goals)
    top_type, top_count = type_counts.most_common(1)[0]
    insights.append(
        f"You have a strong focus on {top_type.value} goals ({top_count} out of {len(goals)} goals)"
    )

    active = [g for g in goals if g.status in (GoalStatus.ACTIVE, GoalStatus.DRAFT)]
    if len(active) > 3:
        insights.append(
            f"You have {len(active)} active goals - consider prioritizing 2-3 key goals for better focus"
        )

    progressing = [p for p in (calculate_goal_progress(g) for g in goals) if p > 0]
    if progressing:
        average = sum(progressing) / len(progressing)
        insights.append(f"Your average progress across active goals is {average:.1f}% - great momentum!")

    total = sum(len(g.milestones) for g in goals)
    if total > 0:
        completed = sum(
            1 for g in goals for m in g.milestones if m.status == MilestoneStatus.COMPLETED
        )
        insights.append(
            f"You've completed {completed} out of {total} milestones ({completed / total * 100:.1f}%)"
        )

    return insights


def generate_recommendations(goals: List[Goal], now: Optional[datetime] = None) -> List[str]:
    now = as_utc(now or utcnow())
    recommendations: List[str] = []

    no_deadline = [g for g in goals if not g.end_date and g.type != GoalType.HABIT]
    if no_deadline:
        recommendations.append(
            f"Consider setting deadlines for {_count(len(no_deadline), 'goal')} to improve focus and urgency"
        )

    no_accountability = [g for g in goals if not g.accountability]
    if no_accountability:
        recommendations.append(
            f"Add accountability partners to {_count(len(no_accountability), 'goal')} to increase success rates"
        )

    no_milestones = [g for g in goals if not g.milestones and g.end_date]
    if no_milestones:
        recommendations.append(
            f"Break down {_count(len(no_milestones), 'long-term goal')} into smaller milestones for better tracking"
        )

    overdue = [
        g for g in goals
        if g.end_date and as_utc(g.end_date) < now and g.status != GoalStatus.COMPLETED
    ]
    if overdue:
        recommendations.append(
            f"Review and update {_count(len(overdue), 'overdue goal')} - consider adjusting timelines or breaking them down"
        )

    return recommendations


# ==========================================
# JSON
# ==========================================

def render_json(goals: List[Goal], options: ExportOptions, now: datetime) -> str:
    profile = GoalProfile(
        user_context=options.user_context,
        goals=[
            goal.model_copy(update={
                "milestones": goal.milestones if options.include_milestones else [],
                "reflection": goal.reflection if options.include_reflections else None,
            })
            for goal in goals
        ],
        insights=generate_insights(goals) if options.include_progress else None,
        recommendations=generate_recommendations(goals, now),
        generated_at=now,
        version=PROFILE_VERSION,
    )
    return profile.model_dump_json(by_alias=True, exclude_none=True, indent=2)


# ==========================================
# MARKDOWN
# ==========================================

def _markdown_goal(goal: Goal, options: ExportOptions, now: datetime) -> str:
    out: List[str] = []
    progress = calculate_goal_progress(goal)

    out.append(f"### {goal.title}\n\n")

    if options.customization.theme == "detailed":
        out.append(
            f"**Type:** {goal.type.value} | **Priority:** {goal.priority.value} | **Status:** {goal.status.value}\n\n"
        )

    if options.include_progress and progress > 0:
        out.append(f"**Progress:** {progress_bar(progress)}\n\n")

    if goal.description:
        out.append(f"{goal.description}\n\n")

    if goal.motivation:
        out.append(f"**💫 Why this matters:** {goal.motivation}\n\n")

    out.append(f"**📅 Timeline:** {format_goal_duration(goal.start_date, goal.end_date, now)}")
    if goal.end_date:
        out.append(f" (Due: {_date(goal.end_date)})")
    out.append("\n\n")

    if goal.target_value and goal.unit:
        out.append(f"**🎯 Target:** {_number(goal.target_value)} {goal.unit}\n")
        if options.include_progress:
            out.append(f"**📊 Current:** {_number(goal.current_value or 0)} {goal.unit}\n")
        out.append("\n")

    if options.include_milestones and goal.milestones:
        out.append("**🎪 Milestones:**\n\n")
        for milestone in goal.milestones:
            icon = STATUS_ICONS.get(milestone.status, DEFAULT_STATUS_ICON)
            out.append(f"- {icon} {milestone.title}")
            if milestone.due_date:
                out.append(f" *(Due: {_date(milestone.due_date)})*")
            out.append("\n")
            if milestone.description:
                out.append(f"  - {milestone.description}\n")
        out.append("\n")

    if goal.accountability:
        out.append(f"**🤝 Accountability Partner:** {goal.accountability}\n\n")

    if goal.resources:
        out.append("**📚 Resources:**\n")
        out.extend(f"- {resource}\n" for resource in goal.resources)
        out.append("\n")

    if goal.obstacles:
        out.append("**⚠️ Anticipated Challenges:**\n")
        out.extend(f"- {obstacle}\n" for obstacle in goal.obstacles)
        out.append("\n")

    if goal.reward:
        out.append(f"**🎉 Completion Reward:** {goal.reward}\n\n")

    if goal.tags:
        out.append(f"**🏷️ Tags:** {' '.join(f'`{tag}`' for tag in goal.tags)}\n\n")

    if options.include_reflections and goal.reflection:
        out.append(f"**💭 Reflection:** {goal.reflection}\n\n")

    return "".join(out)


def render_markdown(goals: List[Goal], options: ExportOptions, now: datetime) -> str:
    custom = options.customization
    out: List[str] = [
        f"# {_profile_title(options)}\n\n",
        f"*{custom.subtitle or DEFAULT_SUBTITLE}*\n\n",
        f"**Generated:** {_date(now)}\n",
        f"**Goals Count:** {len(goals)}\n\n",
        "---\n\n",
    ]

    if custom.theme != "minimal":
        out.append("## 📋 Table of Contents\n\n")
        out.extend(f"{i}. [{goal.title}](#{_slug(goal.title)})\n" for i, goal in enumerate(goals, 1))
        out.append("\n---\n\n")

    out.append("## 🎯 Goals\n\n")
    out.append("\n---\n\n".join(_markdown_goal(goal, options, now) for goal in goals))

    if custom.include_insights:
        out.append("\n## 💡 Insights\n\n")
        out.extend(f"- {insight}\n" for insight in generate_insights(goals))

    if custom.include_recommendations:
        out.append("\n## 📈 Recommendations\n\n")
        out.extend(f"- {rec}\n" for rec in generate_recommendations(goals, now))

    out.append("\n---\n\n")
    out.append(f"*Generated by LegianOS Goal Management System on {_date(now)}*\n")
    return "".join(out)


# ==========================================
# CSV
# ==========================================

def render_csv(goals: List[Goal], options: ExportOptions, now: datetime) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    headers = CSV_HEADERS + (CSV_MILESTONE_HEADERS if options.include_milestones else [])
    writer.writerow(headers)

    for goal in goals:
        row = [
            goal.title,
            goal.type.value,
            goal.priority.value,
            goal.status.value,
            _date(goal.start_date),
            _date(goal.end_date) if goal.end_date else "",
            _number(goal.target_value) if goal.target_value else "",
            _number(goal.current_value or 0),
            goal.unit or "",
            f"{calculate_goal_progress(goal):.1f}",
            goal.motivation or "",
            goal.accountability or "",
            "; ".join(goal.tags),
        ]
        if options.include_milestones:
            completed = sum(1 for m in goal.milestones if m.status == MilestoneStatus.COMPLETED)
            row += [str(len(goal.milestones)), str(completed)]
        writer.writerow(row)

    return buffer.getvalue()


# ==========================================
# HTML (PDF-ready)
# ==========================================

HTML_STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', system-ui, sans-serif;
            line-height: 1.6;
            color: #134611;
            max-width: 800px;
            margin: 0 auto;
            padding: 20px;
            background: #fafef5;
        }
        .header { border-bottom: 3px solid #3da35d; margin-bottom: 30px; padding-bottom: 20px; }
        .header h1 { color: #134611; margin: 0; }
        .header p { color: #3e8914; margin: 5px 0; }
        .goal { margin-bottom: 40px; padding: 20px; background: white; border-left: 4px solid #96e072; border-radius: 8px; box-shadow: 0 2px 4px rgba(19,70,17,0.1); }
        .goal h2 { color: #134611; margin-top: 0; border-bottom: 1px solid #e8fccf; padding-bottom: 10px; }
        .progress-bar { width: 100%; height: 8px; background: #e8fccf; border-radius: 4px; overflow: hidden; margin: 10px 0; }
        .progress-fill { height: 100%; background: linear-gradient(90deg, #3da35d, #96e072); }
        .milestone { padding: 8px 12px; margin: 5px 0; background: #f1fde2; border-radius: 4px; border-left: 3px solid #96e072; }
        .milestone.completed { background: #d5f0de; border-left-color: #3da35d; }
        .tags { margin-top: 15px; }
        .tag { display: inline-block; background: #e8fccf; color: #134611; padding: 2px 8px; border-radius: 12px; font-size: 0.85em; margin: 2px; }
        .footer { margin-top: 40px; text-align: center; color: #3e8914; font-size: 0.9em; border-top: 1px solid #e8fccf; padding-top: 20px; }
        @media print {
            body { background: white; }
            .goal { box-shadow: none; border: 1px solid #e8fccf; }
        }
"""


def _html_goal(goal: Goal, options: ExportOptions, now: datetime) -> str:
    e = html.escape
    progress = calculate_goal_progress(goal)
    parts = ['    <div class="goal">', f"        <h2>{e(goal.title)}</h2>"]

    if options.include_progress and progress > 0:
        parts += [
            '        <div style="margin: 15px 0;">',
            f"            <strong>Progress: {progress:.1f}%</strong>",
            '            <div class="progress-bar">',
            f'                <div class="progress-fill" style="width: {progress:.1f}%"></div>',
            "            </div>",
            "        </div>",
        ]

    if goal.description:
        parts.append(f"        <p><strong>Goal:</strong> {e(goal.description)}</p>")
    if goal.motivation:
        parts.append(f"        <p><strong>💫 Motivation:</strong> {e(goal.motivation)}</p>")

    timeline = format_goal_duration(goal.start_date, goal.end_date, now)
    if goal.end_date:
        timeline += f" (Due: {_date(goal.end_date)})"
    parts.append(f"        <p><strong>📅 Timeline:</strong> {timeline}</p>")

    if goal.target_value and goal.unit:
        line = f"<strong>🎯 Target:</strong> {_number(goal.target_value)} {e(goal.unit)}"
        if options.include_progress:
            line += f" | <strong>Current:</strong> {_number(goal.current_value or 0)} {e(goal.unit)}"
        parts.append(f"        <p>{line}</p>")

    if options.include_milestones and goal.milestones:
        parts.append('        <div style="margin-top: 20px;">')
        parts.append("            <strong>🎪 Milestones:</strong>")
        for milestone in goal.milestones:
            css = "milestone completed" if milestone.status == MilestoneStatus.COMPLETED else "milestone"
            due = f" <em>(Due: {_date(milestone.due_date)})</em>" if milestone.due_date else ""
            icon = STATUS_ICONS.get(milestone.status, DEFAULT_STATUS_ICON)
            parts.append(f'            <div class="{css}">{icon} {e(milestone.title)}{due}</div>')
        parts.append("        </div>")

    if goal.accountability:
        parts.append(f"        <p><strong>🤝 Accountability:</strong> {e(goal.accountability)}</p>")
    if goal.reward:
        parts.append(f"        <p><strong>🎉 Reward:</strong> {e(goal.reward)}</p>")

    if goal.tags:
        tags = "".join(f'<span class="tag">{e(tag)}</span>' for tag in goal.tags)
        parts.append(f'        <div class="tags">{tags}</div>')

    if options.include_reflections and goal.reflection:
        parts.append(f"        <p><strong>💭 Reflection:</strong> {e(goal.reflection)}</p>")

    parts.append("    </div>")
    return "\n".join(parts) + "\n"


def render_html(goals: List[Goal], options: ExportOptions, now: datetime) -> str:
    e = html.escape
    title = e(_profile_title(options))
    subtitle = e(options.customization.subtitle or DEFAULT_SUBTITLE)

    head = (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '    <meta charset="UTF-8">\n'
        '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"    <title>{title}</title>\n"
        f"    <style>{HTML_STYLE}    </style>\n"
        "</head>\n"
        "<body>\n"
        '    <div class="header">\n'
        f"        <h1>{title}</h1>\n"
        f"        <p>{subtitle}</p>\n"
        f"        <p><strong>Generated:</strong> {_date(now)} | <strong>Goals:</strong> {len(goals)}</p>\n"
        "    </div>\n"
    )
    body = "".join(_html_goal(goal, options, now) for goal in goals)
    foot = (
        '    <div class="footer">\n'
        "        <p>Generated by <strong>LegianOS Goal Management System</strong></p>\n"
        "        <p>Take action, track progress, achieve greatness. 🌟</p>\n"
        "    </div>\n"
        "</body>\n"
        "</html>\n"
    )
    return head + body + foot


# ==========================================
# ENTRY POINT
# ==========================================

RENDERERS: Dict[ExportFormat, Callable[[List[Goal], ExportOptions, datetime], str]] = {
    ExportFormat.JSON: render_json,
    ExportFormat.MARKDOWN: render_markdown,
    ExportFormat.CSV: render_csv,
    ExportFormat.PDF: render_html,
}


def export_filename(fmt: ExportFormat, now: datetime) -> str:
    extension, _ = FILE_TYPES[fmt]
    return f"{settings.product_name}-goals-{_date(now)}.{extension}"


def export_goals(
    goals: List[Goal],
    fmt: Union[ExportFormat, str],
    options: Optional[ExportOptions] = None,
    now: Optional[datetime] = None,
) -> ExportResult:
    """
    Render `goals` in `fmt`.
    Raises GoalExportError for unknown formats or renderer failures.
    """
    try:
        fmt = ExportFormat(fmt)
    except ValueError as e:
        raise GoalExportError(f"Unsupported export format: {fmt}") from e

    options = options or ExportOptions()
    now = as_utc(now or utcnow())

    try:
        content = RENDERERS[fmt](goals, options, now)
    except Exception as e:
        logger.error("goal_export_failed", extra={"format": fmt.value, "error": str(e)})
        raise GoalExportError(f"Failed to export goals as {fmt.value}: {e}") from e

    _, mime_type = FILE_TYPES[fmt]
    return ExportResult(
        content=content,
        filename=export_filename(fmt, now),
        mime_type=mime_type,
        size_bytes=len(content.encode("utf-8")),
        metadata=ExportMetadata(
            goal_count=len(goals),
            export_date=now,
            format=fmt,
            version=PROFILE_VERSION,
        ),
    )
