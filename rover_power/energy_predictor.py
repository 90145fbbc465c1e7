"""
rover_power/energy_predictor.py
===============================
Rover Power Manager — Advisory Sol Energy Forecast

Coarse forward estimate of net energy over one day/night cycle from fixed
average rates. The forecast is advisory: it does not read live telemetry
and is never fed back into mode decisions.

Equations:
    t_day        = T_sol · f_daylight
    E_gen        = P_gen,avg · t_day / 3600                  [Wh]
    E_net        = (P_gen,avg − P_cons,avg) · t_day / 3600   [Wh]
    E_night      = P_cons,avg · (T_sol − t_day) / 3600       [Wh]
    E_sol        = E_net − E_night                           [Wh]
"""

from __future__ import annotations

from dataclasses import dataclass

from rover_power.config import PredictorConfig
from rover_power.energy_state import mode_label

SECONDS_PER_HOUR: float = 3600.0


@dataclass(frozen=True)
class SolPrediction:
    """Forecast for the next sol. All energies in Wh.

    Attributes:
        predicted_net_energy_wh:  Net energy over the daylight window.
        daylight_generation_wh:   Generation over the daylight window.
        daylight_consumption_wh:  Consumption over the daylight window.
        night_consumption_wh:     Consumption over the dark part of the sol.
        sol_balance_wh:           Daylight generation minus whole-sol consumption.
        daylight_s:               Length of the daylight window [s].
    """
    predicted_net_energy_wh: float
    daylight_generation_wh:  float
    daylight_consumption_wh: float
    night_consumption_wh:    float
    sol_balance_wh:          float
    daylight_s:              float


class EnergyPredictor:
    """Fixed-rate sol energy forecaster.

    Args:
        config: Average-rate assumptions; defaults to the fixed constants.

    Example:
        >>> round(EnergyPredictor().predict().predicted_net_energy_wh, 2)
        492.0
    """

    def __init__(self, config: PredictorConfig | None = None) -> None:
        self._config: PredictorConfig = config if config is not None else PredictorConfig()

    def predict(self) -> SolPrediction:
        cfg = self._config
        daylight_s = cfg.sol_duration_s * cfg.daylight_fraction
        night_s = cfg.sol_duration_s - daylight_s

        generation_wh = cfg.avg_generation_w * daylight_s / SECONDS_PER_HOUR
        daylight_consumption_wh = cfg.avg_consumption_w * daylight_s / SECONDS_PER_HOUR
        night_consumption_wh = cfg.avg_consumption_w * night_s / SECONDS_PER_HOUR
        net_wh = (cfg.avg_generation_w - cfg.avg_consumption_w) * daylight_s / SECONDS_PER_HOUR

        return SolPrediction(
            predicted_net_energy_wh=net_wh,
            daylight_generation_wh=generation_wh,
            daylight_consumption_wh=daylight_consumption_wh,
            night_consumption_wh=night_consumption_wh,
            sol_balance_wh=net_wh - night_consumption_wh,
            daylight_s=daylight_s,
        )


def format_prediction_line(prediction: SolPrediction, soc: float, mode: object) -> str:
    """Human-readable prediction report line.

    Example:
        >>> from rover_power.energy_state import PowerMode
        >>> format_prediction_line(EnergyPredictor().predict(), 74.07, PowerMode.NORMAL)
        'Energy prediction for next sol: 492.00 Wh | Current SOC: 74.1% | Mode: NORMAL'
    """
    return (
        f"Energy prediction for next sol: {prediction.predicted_net_energy_wh:.2f} Wh"
        f" | Current SOC: {soc:.1f}%"
        f" | Mode: {mode_label(mode)}"
    )
