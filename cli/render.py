from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_dashboard(payload: Dict[str, Any]) -> None:
    echo_heading(f"Semana {payload.get('week_label')}")
    echo_key_values(
        [
            ("energia", f"{payload.get('energy_week')} kWh ({payload.get('energy_week_delta')})"),
            ("resíduos", f"{payload.get('waste_week')} kg ({payload.get('waste_week_delta')})"),
            ("eficiência média", payload.get("week_efficiency")),
        ]
    )
    typer.echo()
    echo_heading(f"Mês {payload.get('month_label')}")
    echo_key_values(
        [
            ("energia", payload.get("month_energy")),
            ("resíduos", payload.get("month_waste")),
            ("economia fiscal", payload.get("month_tax")),
            ("eficiência atual", payload.get("efficiency_current")),
        ]
    )


def render_report(payload: Dict[str, Any]) -> None:
    echo_heading(payload.get("title") or "Relatório")
    echo_key_values(
        [
            ("Data do Relatório", payload.get("generated_at")),
            ("Período (mês)", payload.get("period_label")),
        ]
    )

    stats = payload.get("stats") or {}
    typer.echo()
    echo_heading("Estatísticas")
    echo_key_values(
        [
            ("Resíduos Processados", stats.get("waste")),
            ("Energia Gerada", stats.get("energy")),
            ("Eficiência Média", stats.get("efficiency")),
            ("Economia Fiscal", stats.get("tax")),
        ]
    )

    activities = payload.get("activities") or []
    typer.echo()
    echo_heading("Atividades Recentes")
    if activities:
        for entry in activities:
            value = entry.get("value")
            suffix = f" ({value})" if value else ""
            typer.echo(f"  - {entry.get('date')} {entry.get('activity')} [{entry.get('status')}]{suffix}")
    else:
        typer.echo("Nenhuma atividade registrada.")
