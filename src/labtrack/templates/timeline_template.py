"""Default HTML timeline template."""

TIMELINE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Timeline - {{ protocol_no }}</title>
    <style>
        :root {
            --primary: #2563eb; --success: #16a34a; --warning: #ea580c;
            --gray-100: #f3f4f6; --gray-200: #e5e7eb; --gray-500: #6b7280; --gray-900: #111827;
        }
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            line-height: 1.6; color: var(--gray-900); max-width: 900px; margin: 0 auto; padding: 2rem; background: var(--gray-100); }
        .header { background: white; padding: 2rem; border-radius: 8px; margin-bottom: 2rem; box-shadow: 0 1px 3px rgba(0,0,0,0.1); }
        h1 { color: var(--primary); margin: 0 0 0.5rem 0; }
        .meta { color: var(--gray-500); font-size: 0.9rem; }
        .phase { background: white; padding: 1.5rem; border-radius: 8px; margin-bottom: 1.5rem; border-left: 6px solid var(--gray-200); }
        .phase-past { border-left-color: var(--success); opacity: 0.85; }
        .phase-current { border-left-color: var(--primary); box-shadow: 0 1px 6px rgba(37,99,235,0.25); }
        .phase-future { opacity: 0.6; }
        .phase h2 { margin: 0 0 0.5rem 0; display: flex; justify-content: space-between; }
        .badge { display: inline-block; padding: 0.25rem 0.75rem; border-radius: 9999px; font-size: 0.75rem; font-weight: 600; text-transform: uppercase; background: var(--gray-200); }
        .summary { color: var(--gray-500); font-size: 0.85rem; }
        .steps { list-style: none; padding-left: 0.5rem; }
        .steps li { padding: 0.25rem 0; display: flex; gap: 0.75rem; align-items: center; }
        .step-done { color: var(--success); text-decoration: line-through; }
        .step-pending { color: var(--primary); font-weight: 600; }
        .step-projected { color: var(--gray-500); }
        .date { font-size: 0.75rem; font-weight: bold; padding: 0.1rem 0.5rem; border-radius: 4px; background: var(--gray-100); }
        .date-pending { background: #ffedd5; color: var(--warning); }
    </style>
</head>
<body>
    <div class="header">
        <h1>{{ protocol_no }} - {{ test_name }}</h1>
        <p class="meta">Status: {{ status }} | Next action: {{ next_scheduled_date }} {{ next_scheduled_note }}</p>
        <p class="meta">Generated: {{ generated_at }}</p>
    </div>
    {% for phase in phases %}
    <div class="phase phase-{{ phase.state }}">
        <h2>{{ phase.position + 1 }}. {{ phase.protocol_name }}<span class="badge">{{ phase.state }}</span></h2>
        <p class="summary">{{ phase.summary }}</p>
        {% if phase.steps %}
        <ul class="steps">
            {% for step in phase.steps %}
            <li class="step-{{ step.state }}">
                <span>{{ step.step_number }}. {{ step.required_code }}{% if step.note %} - {{ step.note }}{% endif %}</span>
                <span class="summary">(+{{ step.days_after_previous }} days)</span>
                {% if step.date %}<span class="date {% if step.state == 'pending' %}date-pending{% endif %}">{% if step.state == 'pending' %}Planned{% else %}Estimated{% endif %}: {{ step.date }}</span>{% endif %}
            </li>
            {% endfor %}
        </ul>
        {% endif %}
    </div>
    {% else %}
    <div class="phase">No multi-protocol flow defined for this patient.</div>
    {% endfor %}
</body>
</html>"""
