"""Rothermel (1972) surface fire spread.

All quantities are in the English units the model was published in:
loadings in lb/ft^2, rates in ft/min, reaction intensity in
Btu/ft^2/min, moistures as fractions and angles in radians.

Functions:
    - calc_r_h: Head fire spread rate, no-wind no-slope spread rate,
      reaction intensity and direction of maximum spread.
    - calc_r_0: No-wind no-slope spread rate and reaction intensity.
    - calc_wind_slope_vec: Vector sum of the wind and slope contributions.
    - calc_effective_wind_speed: Wind speed that alone would produce the
      combined wind and slope effect.

References:
    - Rothermel, R. C. (1972). A mathematical model for predicting fire spread in
      wildland fuels. USDA Forest Service Research Paper INT-115.
    - Andrews, P. L. (2018). The Rothermel surface fire spread model and associated
      developments. USDA Forest Service RMRS-GTR-371.
"""

from typing import Tuple

import numpy as np

from firecalc.models.fuel_models import NUM_DEAD, Fuel

# ft/min per mi/h
FT_MIN_PER_MPH = 88.0


def calc_r_h(fuel: Fuel, m_f: np.ndarray, wind_speed: float, slope_angle: float,
             rel_wind_dir: float) -> Tuple[float, float, float, float]:
    """Head fire spread rate for a fuel bed under wind and slope.

    Args:
        fuel (Fuel): Fuel bed.
        m_f (np.ndarray): Moisture content per size class (fraction).
        wind_speed (float): Midflame wind speed (ft/min).
        slope_angle (float): Slope steepness (radians).
        rel_wind_dir (float): Wind direction relative to upslope (radians).

    Returns:
        Tuple[float, float, float, float]: R_h (ft/min), R_0 (ft/min),
        I_r (Btu/ft^2-min) and the direction of maximum spread relative
        to upslope (radians).
    """
    R_0, I_r = calc_r_0(fuel, m_f)

    # Wind speed limit
    wind_speed = min(wind_speed, 0.9 * I_r)

    phi_w = calc_wind_factor(fuel, wind_speed)
    phi_s = calc_slope_factor(fuel, slope_angle)

    vec_speed, alpha = calc_wind_slope_vec(R_0, phi_w, phi_s, rel_wind_dir)

    R_h = R_0 + vec_speed

    return R_h, R_0, I_r, alpha

def calc_wind_slope_vec(R_0: float, phi_w: float, phi_s: float, angle: float) -> Tuple[float, float]:
    """Vector sum of the wind and slope spread contributions.

    Args:
        R_0 (float): No-wind no-slope spread rate (ft/min).
        phi_w (float): Wind factor.
        phi_s (float): Slope factor.
        angle (float): Wind direction relative to upslope (radians).

    Returns:
        Tuple[float, float]: Magnitude (ft/min) and direction relative to
        upslope (radians).
    """
    d_w = R_0 * phi_w
    d_s = R_0 * phi_s

    x = d_s + d_w * np.cos(angle)
    y = d_w * np.sin(angle)
    vec_mag = np.sqrt(x**2 + y**2)

    if vec_mag == 0:
        vec_dir = 0

    else:
        vec_dir = np.arctan2(y, x)

    return vec_mag, vec_dir

def calc_r_0(fuel: Fuel, m_f: np.ndarray) -> Tuple[float, float]:
    """No-wind no-slope spread rate and reaction intensity.

    Args:
        fuel (Fuel): Fuel bed.
        m_f (np.ndarray): Moisture content per size class (fraction).

    Returns:
        Tuple[float, float]: R_0 (ft/min) and I_r (Btu/ft^2-min).
    """

    # Calculate moisture damping constants
    dead_mf, live_mf = get_characteristic_moistures(fuel, m_f)
    live_mx = calc_live_mx(fuel, m_f)
    live_moisture_damping = calc_moisture_damping(live_mf, live_mx)
    dead_moisture_damping = calc_moisture_damping(dead_mf, fuel.dead_mx)

    I_r = calc_I_r(fuel, dead_moisture_damping, live_moisture_damping)
    heat_sink = calc_heat_sink(fuel, m_f)

    R_0 = (I_r * fuel.flux_ratio)/heat_sink

    return R_0, I_r # ft/min, BTU/ft^2-min


def get_characteristic_moistures(fuel: Fuel, m_f: np.ndarray):

    dead_mf = np.dot(fuel.f_dead_arr, m_f[:NUM_DEAD])
    live_mf = np.dot(fuel.f_live_arr, m_f[NUM_DEAD:])

    return dead_mf, live_mf

def calc_live_mx(fuel: Fuel, m_f: np.ndarray):
    """Live fuel moisture of extinction (fraction).

    Returns the dead extinction moisture when the bed has no live fuel.
    """

    W = fuel.W

    if W == np.inf:
        return fuel.dead_mx

    num = 0
    den = 0
    for i in range(NUM_DEAD):
        if fuel.s[i] != 0:
            num += m_f[i] * fuel.w_0[i] * np.exp(-138/fuel.s[i])
            den += fuel.w_0[i] * np.exp(-138/fuel.s[i])

    mf_dead = num/den

    mx = 2.9 * W * (1 - mf_dead / fuel.dead_mx) - 0.226

    return max(mx, fuel.dead_mx)

def calc_I_r(fuel: Fuel, dead_moist_damping: float, live_moist_damping: float) -> float:

    mineral_damping = calc_mineral_damping(fuel.s_e)

    dead_calc = fuel.w_n_dead * fuel.heat_content * dead_moist_damping * mineral_damping
    live_calc = fuel.w_n_live * fuel.heat_content * live_moist_damping * mineral_damping

    I_r = fuel.gamma * (dead_calc + live_calc)

    return I_r

def calc_heat_sink(fuel: Fuel, m_f: np.ndarray) -> float:
    """Heat required to bring the fuel ahead of the fire to ignition (Btu/ft^3)."""

    Q_ig = 250 + 1116 * np.asarray(m_f)

    heat_sink = 0

    dead_sum = 0
    for j in range(NUM_DEAD):
        if fuel.s[j] != 0:
            dead_sum += fuel.f_dead_arr[j] * np.exp(-138/fuel.s[j]) * Q_ig[j]

    heat_sink += fuel.f_i[0] * dead_sum

    live_sum = 0
    for j in range(len(fuel.f_live_arr)):
        if fuel.s[NUM_DEAD + j] != 0:
            live_sum += fuel.f_live_arr[j] * np.exp(-138/fuel.s[NUM_DEAD + j]) * Q_ig[NUM_DEAD + j]

    heat_sink += fuel.f_i[1] * live_sum
    heat_sink *= fuel.rho_b

    return heat_sink


def calc_wind_factor(fuel: Fuel, wind_speed: float) -> float:
    """Wind factor phi_w for a midflame wind speed in ft/min."""
    phi_w = fuel.C * (wind_speed ** fuel.B) * fuel.rat ** (-fuel.E)

    return phi_w

def calc_slope_factor(fuel: Fuel, phi: float) -> float:
    """Slope factor phi_s for a slope angle in radians."""
    phi_s = 5.275 * (fuel.beta ** (-0.3)) * (np.tan(phi)) ** 2

    return phi_s


def calc_moisture_damping(m_f: float, m_x: float) -> float:
    # At or above extinction moisture the fuel does not burn
    if m_x <= 0 or m_f >= m_x:
        return 0.0

    r_m = m_f / m_x

    moist_damping = 1 - 2.59 * r_m + 5.11 * (r_m)**2 - 3.52 * (r_m)**3

    return max(0, moist_damping)

def calc_mineral_damping(s_e: float = 0.010) -> float:

    mineral_damping = 0.174 * s_e ** (-0.19)

    return mineral_damping


def calc_effective_wind_factor(R_h: float, R_0: float) -> float:

    phi_e = (R_h / R_0) - 1

    return phi_e

def calc_effective_wind_speed(fuel: Fuel, R_h: float, R_0: float) -> float:
    """Effective midflame wind speed (ft/min)."""

    if R_0 <= 0 or R_h <= R_0:
        phi_e = 0

    else:
        phi_e = calc_effective_wind_factor(R_h, R_0)

    u_e = ((phi_e * (fuel.rat**fuel.E))/fuel.C) ** (1/fuel.B)

    return u_e

def calc_residence_time(fuel: Fuel) -> float:
    """Flame residence time (min), Anderson (1969)."""
    return 384 / fuel.sav_ratio

def calc_flame_len(fli: float) -> float:
    """Flame length (ft) from fireline intensity in Btu/ft/s.

    Byram (1959), as used by Brown and Davis (1973) pg. 175.
    """
    if fli <= 0:
        return 0.0
    return 0.45 * fli ** 0.46

def calc_length_to_width(effective_wind_mph: float) -> float:
    """Fire ellipse length-to-width ratio from effective wind speed in mi/h."""
    return 1.0 + 0.25 * effective_wind_mph
