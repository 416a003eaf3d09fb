"""Offline narrative table used when no inference provider is configured.

The table is indexed by ``(cycle % 5, stage id)``; the five phases replay a
weather event from onset to recovery so the demo loop tells a coherent story.
"""

from __future__ import annotations

import random
from typing import Dict, Optional

from .schemas import StagePacket

PHASES = (
    "normal_operations",
    "event_onset",
    "crisis_peak",
    "stabilization",
    "optimization",
)


def _p(log_code: str, analysis: str, recommendation: str, financial_impact: str) -> Dict[str, str]:
    return {
        "log_code": log_code,
        "analysis": analysis,
        "recommendation": recommendation,
        "financial_impact": financial_impact,
    }


NARRATIVES: Dict[str, Dict[str, Dict[str, str]]] = {
    "normal_operations": {
        "WA": _p("WX_NOMINAL", "High pressure system stabilizing North Zone. Wind forecast aligned with actuals.", "Monitor only.", "$0"),
        "LF": _p("LOAD_FLAT", "Demand tracking perfectly with Day-Ahead Forecast. Variance < 0.5%.", "Release 50MW RegUp reserves.", "+$12k Savings"),
        "GS": _p("FREQ_STABLE", "Interconnection frequency at 60.001 Hz. Inertia sufficient.", "Maintain current topology.", "N/A"),
        "OP": _p("ARB_OPP", "Price spread West->North detected due to congestion relief.", "Dispatch Battery Storage West.", "+$45k Profit"),
        "CM": _p("ALL_CLEAR", "Grid is Green. Optimal economic dispatch active.", "Continue standard ops.", "N/A"),
    },
    "event_onset": {
        "WA": _p("WIND_RAMP_DOWN", "Sudden cessation of wind in Panhandle. Gradient steeper than forecast.", "Derate Wind Assets by 40%.", "-$150k Lost Gen"),
        "LF": _p("NET_LOAD_SPIKE", "Wind drop creates immediate Net Load ramp. Duck Curve steepening.", "Prepare Peaker Plants.", "High Cost"),
        "GS": _p("INERTIA_RISK", "Loss of wind correlates with frequency dip to 59.96Hz.", "Trigger Fast Frequency Response.", "Reliability Risk"),
        "OP": _p("SCARCITY_PRICING", "RTM Prices spiking to $800/MWh due to scarcity.", "Hedge remaining exposure.", "-$200k Cost"),
        "CM": _p("WARNING_ISSUED", "Weather event causing rapid supply drop. Reserves deploying.", "Alert Control Room.", "N/A"),
    },
    "crisis_peak": {
        "WA": _p("THERMAL_STRESS", "Ambient temp rising. Line ratings degrading in South Zone.", "Limit flow on Path 15.", "Congestion Cost"),
        "LF": _p("DEMAND_SURGE", "AC load higher than predicted due to heat.", "Request Demand Response.", "DR Payments"),
        "GS": _p("N-1_VIOLATION_CRITICAL", "Contingency analysis shows overload if Line A fails.", "Re-dispatch to relieve constraint.", "High"),
        "OP": _p("LMP_SPLIT", "Severe congestion pricing. Houston Zone isolated.", "No economic options available.", "Critical"),
        "CM": _p("DEFCON_3_PREPARE_SHED", "System stressed. Multiple constraints active.", "Prepare for potential shed.", "N/A"),
    },
    "stabilization": {
        "WA": _p("FRONT_PASSING", "Wind picking back up in West. Temp stabilizing.", "Restore line ratings.", "Positive"),
        "LF": _p("PEAK_PASSED", "Daily peak load passed. Demand curve softening.", "Release DR assets.", "Savings"),
        "GS": _p("RECOVERY", "Frequency restoring to 60.00Hz. ACE crossing zero.", "Stand down emergency reserves.", "N/A"),
        "OP": _p("PRICE_NORM", "Prices returning to double digits.", "Resume arbitrage.", "+$10k"),
        "CM": _p("STAND_DOWN", "Crisis averted. Grid returning to normal state.", "Log incident report.", "N/A"),
    },
    "optimization": {
        "WA": _p("SOLAR_PEAK", "Clear skies. Solar output maxing out.", "None.", "N/A"),
        "LF": _p("NEG_PRICE_RISK", "Oversupply imminent.", "Charge all batteries.", "Free Energy"),
        "GS": _p("VOLTAGE_HIGH", "Low load + High Gen = High Voltage.", "Switch Reactance.", "N/A"),
        "OP": _p("NEG_ARBITRAGE", "Negative prices detected.", "Paid to consume power.", "+$5k"),
        "CM": _p("OPPORTUNISTIC", "Grid is flush with power.", "Max storage intake.", "N/A"),
    },
}

DEFAULT_PACKET = _p("SIM_DATA", "Simulation running.", "Wait.", "N/A")

SYSTEM_NOISE = (
    "TCP_KEEPALIVE_ACK",
    "MEM_GC_ALLOC_0.4ms",
    "SYNC_TIME_NTP_POOL",
    "TELEMETRY_BATCH_INGEST_OK",
    "VPC_FLOW_LOG_TRUNC",
    "HEARTBEAT_CLUSTER_A",
    "LATENCY_CHECK_2ms",
    "TLS_HANDSHAKE_RENEW",
    "CACHE_INVALIDATE_PARTIAL",
)


def phase_for(cycle: int) -> str:
    return PHASES[cycle % len(PHASES)]


def offline_packet(stage_id: str, cycle: int) -> StagePacket:
    """Return the pre-authored packet for `stage_id` at `cycle` (deterministic)."""
    row = NARRATIVES[phase_for(cycle)]
    return StagePacket(**row.get(stage_id, DEFAULT_PACKET))


def system_noise(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(SYSTEM_NOISE)
