"""Agent workload tracking and lead assignment."""

from dataclasses import dataclass, field

from leadflow.constants import ACTIVE_STATUSES


@dataclass(frozen=True)
class Agent:
    id: str
    name: str
    specialties: tuple[str, ...] = ()  # lead intents
    preferred_sources: tuple[str, ...] = ()


@dataclass
class AgentWorkload:
    agent_id: str
    agent_name: str
    active_leads: int = 0
    new_leads: int = 0
    qualifying_leads: int = 0
    average_score: float = 0.0
    sla_compliance: float = 0.0  # percent
    _score_total: int = field(default=0, repr=False)
    _compliant: int = field(default=0, repr=False)


@dataclass(frozen=True)
class AgentSuggestion:
    agent_id: str
    agent_name: str
    confidence: float  # 0-1
    reason: str


def agent_workloads(leads) -> list[AgentWorkload]:
    """Per-agent counts over active (new, qualifying, qualified) leads."""
    by_agent: dict[str, AgentWorkload] = {}
    for lead in leads:
        if lead.status not in ACTIVE_STATUSES:
            continue
        workload = by_agent.setdefault(
            lead.agent_id, AgentWorkload(agent_id=lead.agent_id, agent_name=lead.agent_name)
        )
        workload.active_leads += 1
        if lead.status == "new":
            workload.new_leads += 1
        elif lead.status == "qualifying":
            workload.qualifying_leads += 1
        workload._score_total += lead.qualification_score
        if lead.sla_compliant:
            workload._compliant += 1

    for workload in by_agent.values():
        workload.average_score = workload._score_total / workload.active_leads
        workload.sla_compliance = workload._compliant / workload.active_leads * 100
    return list(by_agent.values())


def least_loaded_agent(agents: list[Agent], workloads: list[AgentWorkload]) -> Agent:
    """The agent with the fewest active leads; ties go to the first listed."""
    if not agents:
        raise ValueError("No available agents for assignment")
    active = {w.agent_id: w.active_leads for w in workloads}
    return min(agents, key=lambda agent: active.get(agent.id, 0))


def suggest_agent(lead, agents: list[Agent], workloads: list[AgentWorkload]) -> AgentSuggestion:
    """Rank agents by specialty, source familiarity, workload and SLA record."""
    if not agents:
        raise ValueError("No available agents")
    by_id = {w.agent_id: w for w in workloads}

    ranked = []
    for agent in agents:
        points = 0
        reasons = []

        if lead.intent in agent.specialties:
            points += 40
            reasons.append(f"Specializes in {lead.intent}")

        if lead.source in agent.preferred_sources:
            points += 20
            reasons.append(f"Familiar with {lead.source} leads")

        workload = by_id.get(agent.id)
        active = workload.active_leads if workload else 0
        if active == 0:
            points += 20
            reasons.append("Currently has no active leads")
        elif active < 5:
            points += 15
            reasons.append("Low workload")
        elif active < 10:
            points += 10
            reasons.append("Moderate workload")

        sla_rate = workload.sla_compliance if workload else 100.0
        if sla_rate >= 90:
            points += 20
            reasons.append("Excellent SLA compliance")
        elif sla_rate >= 70:
            points += 15
            reasons.append("Good SLA compliance")
        elif sla_rate >= 50:
            points += 10

        ranked.append((points, agent, reasons))

    # stable: earlier agents win ties
    ranked.sort(key=lambda item: item[0], reverse=True)
    points, best, reasons = ranked[0]
    return AgentSuggestion(
        agent_id=best.id,
        agent_name=best.name,
        confidence=points / 100,
        reason=", ".join(reasons),
    )
