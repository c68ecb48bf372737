"""
Starter data for a first run: default categories and a few sample tasks.
"""
import re
from datetime import date, timedelta
from typing import Any, List

from .schema import Category, Subtask, Task, format_date_key


DEFAULT_CATEGORIES = [
    Category("cat-reunioes", "Reuniões", "info"),
    Category("cat-trabalho", "Trabalho", "primary"),
    Category("cat-pessoal", "Pessoal", "success"),
    Category("cat-aniversario", "Aniversários", "secondary"),
    Category("cat-viagem", "Viagem", "warning"),
    Category("cat-saude", "Saude", "error"),
    Category("cat-estudos", "Estudos", "secondary"),
    Category("cat-financas", "Pagamentos", "warning"),
    Category("cat-feriados", "Feriados", "info"),
    Category("cat-lembretes", "Lembretes", "primary"),
]

# (day offset, name, category, done, location, description, extra)
_SAMPLES = [
    (0, "Reunião de alinhamento", "cat-reunioes", False, "Sala Orion",
     "<p>Alinhar metas e entregas da semana.</p>",
     {"startTime": "09:00", "endTime": "10:00", "link": "https://meet.google.com/abc-defg-hij"}),
    (1, "Entrega do relatorio financeiro", "cat-financas", True, "Financeiro",
     "<p>Enviar relatorio mensal para diretoria.</p>",
     {"startTime": "14:00", "endTime": "15:30", "repeat": "monthly"}),
    (2, "Consulta medica", "cat-saude", False, "Clinica Central",
     "<p>Levar exames anteriores.</p>",
     {"startTime": "11:00", "endTime": "12:00"}),
    (4, "Planejamento de sprint", "cat-trabalho", False, "Online",
     "<p>Definir backlog e prioridades.</p>",
     {"startTime": "10:00", "endTime": "11:30", "repeat": "weekly"}),
    (6, "Aniversário da Ana", "cat-aniversario", False, "",
     "<p>Comprar presente.</p>",
     {"allDay": True, "repeat": "yearly"}),
    (8, "Estudo de UX", "cat-estudos", False, "Sala 2",
     "<p>Revisar guidelines de acessibilidade.</p>",
     {"startTime": "16:00", "endTime": "17:30"}),
    (10, "Viagem para cliente", "cat-viagem", False, "",
     "<p>Levar material de apresentação.</p>",
     {"allDay": True}),
]

_LEGACY_SEED_ID = re.compile(r"^task-\d+$")


def sample_tasks(base: date) -> List[Task]:
    """One batch of sample tasks relative to base."""
    seed = format_date_key(base)
    tasks = []
    for i, (offset, name, category, done, location, description, extra) in enumerate(_SAMPLES, start=1):
        extra = dict(extra)
        link = extra.pop("link", "")
        tasks.append(Task(
            id=f"cal-seed-{seed}-{i}",
            name=name,
            date=format_date_key(base + timedelta(days=offset)),
            category_ids=[category],
            done=done,
            link=link,
            location=location,
            description_html=description,
            subtasks=[Subtask(f"sub-{seed}-{i}", "Confirmar presença")] if category == "cat-reunioes" else [],
            extra=extra,
        ))
    return tasks


def create_seed_tasks(today: date) -> List[Task]:
    """Samples for this week and, again, two weeks out."""
    return sample_tasks(today) + sample_tasks(today + timedelta(days=14))


def default_categories() -> List[Category]:
    return [Category(c.id, c.name, c.color) for c in DEFAULT_CATEGORIES]


def should_replace_with_seed(payload: Any) -> bool:
    """
    True for an empty collection or the old three-task demo seed
    (ids "task-1".."task-3"), which is replaced by the current samples.
    """
    if not isinstance(payload, list) or not payload:
        return True
    if len(payload) <= 3 and all(
        isinstance(item, dict) and _LEGACY_SEED_ID.match(str(item.get("id", "")))
        for item in payload
    ):
        return True
    return False
