"""Closed-form fire behavior equations.

Equations used by the size, crown, scorch, safety, spot, ignition,
contain, weather and wind modules. Inputs and outputs are in English
units (ft, ft/min, mi/h, Btu/ft/s, deg F, acres, miles) and
moistures/humidities are fractions unless a docstring says otherwise.

References:
    - Anderson, H. E. (1983). Predicting wind-driven wild land fire size and shape.
      USDA Forest Service Research Paper INT-305.
    - Van Wagner, C. E. (1977). Conditions for the start and spread of crown fire.
      Canadian Journal of Forest Research 7:23-34.
    - Van Wagner, C. E. (1973). Height of crown scorch in forest fires.
      Canadian Journal of Forest Research 3:373-378.
    - Albini, F. A. (1979). Spot fire distance from burning trees - a predictive model.
      USDA Forest Service General Technical Report INT-56.
    - Albini, F. A. and Baughman, R. G. (1979). Estimating windspeeds for predicting
      wildland fire behavior. USDA Forest Service Research Paper INT-221.
    - Latham, D. J. and Schlieter, J. A. (1989). Ignition probabilities of wildland
      fuels based on simulated lightning discharges. USDA Forest Service Research
      Paper INT-411.
    - Fried, J. S. and Fried, B. D. (1996). Simulating wildfire containment with
      realistic tactics. Forest Science 42(3):267-281.
"""

import math
from typing import Tuple

import numpy as np

# Values below this are treated as zero
SMIDGEN = 1.0e-07

# kW/m per Btu/ft/s
KW_M_PER_BTU_FT_S = 3.46165

SQFT_PER_ACRE = 43560.0
FT_PER_MILE = 5280.0


class SpotSource:
    # Firebrand source location on the ridge-to-valley profile
    RIDGE_TOP, MIDSLOPE_WINDWARD, VALLEY_BOTTOM, MIDSLOPE_LEEWARD = 0, 1, 2, 3


class CanopyCover:
    CLOSED, OPEN = 0, 1


# ----------------------------------------------------------------------
# Wind
# ----------------------------------------------------------------------

def wind_speed_at_20ft(wind_10m: float) -> float:
    """20-ft wind speed from a 10-m wind speed (Turner and Lawson 1978)."""
    return wind_10m / 1.15


def midflame_wind_speed(wind_20ft: float, waf: float) -> float:
    return wind_20ft * waf


def wind_adjustment_factor(canopy_cover: float, canopy_ht: float, crown_ratio: float,
                           fuel_depth: float) -> float:
    """Wind adjustment factor from 20-ft to midflame height.

    Args:
        canopy_cover (float): Canopy cover (fraction).
        canopy_ht (float): Canopy height (ft).
        crown_ratio (float): Crown ratio (fraction).
        fuel_depth (float): Fuel bed depth (ft).

    Returns:
        float: Wind adjustment factor in [0, 1].
    """
    # Fraction of the canopy volume filled with crowns
    fraction = crown_ratio * canopy_cover / 3.0

    if canopy_cover < SMIDGEN or fraction < 0.05 or canopy_ht < 6.0:
        # Unsheltered
        if fuel_depth > SMIDGEN:
            waf = 1.83 / math.log((20.0 + 0.36 * fuel_depth) / (0.13 * fuel_depth))
        else:
            waf = 1.0
    else:
        # Sheltered
        waf = 0.555 / (math.sqrt(fraction * canopy_ht)
                       * math.log((20.0 + 0.36 * canopy_ht) / (0.13 * canopy_ht)))

    return min(max(waf, 0.0), 1.0)


# ----------------------------------------------------------------------
# Fire size and shape
# ----------------------------------------------------------------------

def eccentricity(lw_ratio: float) -> float:
    x = lw_ratio * lw_ratio - 1.0
    if x <= 0.0:
        return 0.0
    return math.sqrt(x) / lw_ratio


def backing_spread_rate(head_rate: float, ecc: float) -> float:
    return head_rate * (1.0 - ecc) / (1.0 + ecc)


def flanking_spread_rate(head_rate: float, lw_ratio: float) -> float:
    """Flanking spread rate: half the fire width growth per unit time."""
    back = backing_spread_rate(head_rate, eccentricity(lw_ratio))
    return (head_rate + back) / (2.0 * lw_ratio)


def ellipse_perimeter(length: float, width: float) -> float:
    """Perimeter of an ellipse with the given axis lengths (Ramanujan series)."""
    a = 0.5 * length
    b = 0.5 * width
    if a + b < SMIDGEN:
        return 0.0
    xm = (a - b) / (a + b)
    xk = 1.0 + xm * xm / 4.0 + xm ** 4 / 64.0
    return math.pi * (a + b) * xk


def fire_size(head_rate: float, lw_ratio: float, elapsed: float) -> Tuple[float, ...]:
    """Elliptical fire size from a point source.

    Args:
        head_rate (float): Spread rate at the head (ft/min).
        lw_ratio (float): Length-to-width ratio.
        elapsed (float): Elapsed time (min).

    Returns:
        Tuple[float, ...]: Backing spread rate (ft/min), flanking spread
        rate (ft/min), head distance (ft), back distance (ft), length
        (ft), width (ft), area (acres) and perimeter (ft).
    """
    ecc = eccentricity(lw_ratio)
    back_rate = backing_spread_rate(head_rate, ecc)
    flank_rate = flanking_spread_rate(head_rate, lw_ratio)

    head_dist = head_rate * elapsed
    back_dist = back_rate * elapsed
    length = head_dist + back_dist
    width = length / lw_ratio
    area = math.pi * (length / 2.0) * (width / 2.0) / SQFT_PER_ACRE
    perimeter = ellipse_perimeter(length, width)

    return back_rate, flank_rate, head_dist, back_dist, length, width, area, perimeter


# ----------------------------------------------------------------------
# Fireline intensity and crown fire initiation
# ----------------------------------------------------------------------

def fireline_intensity_from_flame_length(flame_length: float) -> float:
    """Byram's fireline intensity (Btu/ft/s) from flame length (ft)."""
    if flame_length < SMIDGEN:
        return 0.0
    return (flame_length / 0.45) ** (1.0 / 0.46)


def flame_length_from_intensity(fli: float) -> float:
    if fli < SMIDGEN:
        return 0.0
    return 0.45 * fli ** 0.46


def critical_surface_intensity(foliar_moisture: float, canopy_base_ht: float) -> float:
    """Van Wagner's critical surface fireline intensity (Btu/ft/s).

    Args:
        foliar_moisture (float): Foliar moisture content (fraction); at
            least 30% is used.
        canopy_base_ht (float): Crown base height (ft).
    """
    fmc = max(100.0 * foliar_moisture, 30.0)
    cbh = max(0.3048 * canopy_base_ht, 0.1)
    intensity_kw_m = (0.010 * cbh * (460.0 + 25.9 * fmc)) ** 1.5
    return intensity_kw_m / KW_M_PER_BTU_FT_S


def crown_transition(surface_fli: float, critical_fli: float) -> Tuple[float, int]:
    """Transition ratio and flag (0 = no crowning, 1 = crowning)."""
    ratio = surface_fli / critical_fli if critical_fli >= SMIDGEN else 0.0
    return ratio, int(ratio >= 1.0)


# ----------------------------------------------------------------------
# Crown scorch
# ----------------------------------------------------------------------

def scorch_height(fli: float, midflame_wind: float, air_temp: float) -> float:
    """Van Wagner crown scorch height (ft).

    Args:
        fli (float): Fireline intensity (Btu/ft/s).
        midflame_wind (float): Midflame wind speed (mi/h).
        air_temp (float): Air temperature (deg F).
    """
    if fli < SMIDGEN:
        return 0.0
    return ((63.0 / (140.0 - air_temp)) * fli ** 1.166667
            / math.sqrt(fli + midflame_wind ** 3))


# ----------------------------------------------------------------------
# Safety zone
# ----------------------------------------------------------------------

def safety_zone(flame_height: float, personnel: float, personnel_area: float,
                equipment: float, equipment_area: float) -> Tuple[float, float, float]:
    """Safety zone size for a crew.

    Args:
        flame_height (float): Flame height (ft).
        personnel (float): Number of people.
        personnel_area (float): Area needed per person (ft^2).
        equipment (float): Number of pieces of equipment.
        equipment_area (float): Area needed per piece of equipment (ft^2).

    Returns:
        Tuple[float, float, float]: Separation distance (ft), safety zone
        radius (ft) and area (acres).
    """
    separation = 4.0 * flame_height

    core_area = personnel * personnel_area + equipment * equipment_area
    core_radius = math.sqrt(core_area / math.pi) if core_area > SMIDGEN else 0.0

    radius = separation + core_radius
    area = math.pi * radius * radius / SQFT_PER_ACRE
    return separation, radius, area


# ----------------------------------------------------------------------
# Spotting distance from a wind-driven surface fire
# ----------------------------------------------------------------------

def spot_distance_from_surface_fire(flame_length: float, wind_20ft: float, cover_ht: float,
                                    canopy: int, rv_distance: float, rv_elevation: float,
                                    location: int) -> Tuple[float, float, float, float]:
    """Maximum spotting distance from a wind-driven surface fire.

    Args:
        flame_length (float): Surface fire flame length (ft).
        wind_20ft (float): 20-ft wind speed (mi/h).
        cover_ht (float): Downwind tree/vegetation cover height (ft).
        canopy (int): CanopyCover.CLOSED or CanopyCover.OPEN.
        rv_distance (float): Ridge-to-valley horizontal distance (mi).
        rv_elevation (float): Ridge-to-valley elevation difference (ft).
        location (int): SpotSource location of the firebrand source.

    Returns:
        Tuple[float, float, float, float]: Cover height used (ft),
        firebrand height (ft), flat terrain distance (mi) and distance
        over the ridge-to-valley terrain (mi).
    """
    if flame_length < SMIDGEN or wind_20ft < SMIDGEN:
        return 0.0, 0.0, 0.0, 0.0

    f = 322.0 * (0.474 * wind_20ft) ** (-1.01)
    byrams = fireline_intensity_from_flame_length(flame_length)
    firebrand_ht = 1.055 * math.sqrt(f * byrams)

    # Open canopies halve the effective cover height
    ht = cover_ht / 2.0 if canopy == CanopyCover.OPEN else cover_ht

    critical_ht = 2.2 * firebrand_ht ** 0.337 - 4.0
    ht_used = max(ht, critical_ht)
    if ht_used < SMIDGEN:
        return 0.0, firebrand_ht, 0.0, 0.0

    drift = 0.000278 * wind_20ft * firebrand_ht ** 0.643
    ratio = firebrand_ht / ht_used
    flat = (0.000718 * wind_20ft * math.sqrt(ht_used)
            * (0.362 + math.sqrt(ratio) / 2.0 * math.log(ratio)) + drift)
    flat = max(flat, 0.0)

    mountain = spot_distance_mountain_terrain(flat, rv_distance, rv_elevation, location)
    return ht_used, firebrand_ht, flat, mountain


def spot_distance_mountain_terrain(flat: float, rv_distance: float, rv_elevation: float,
                                   location: int) -> float:
    """Adjust a flat-terrain spotting distance (mi) for ridge/valley terrain."""
    if rv_distance < SMIDGEN or rv_elevation < SMIDGEN:
        return flat

    a1 = flat / rv_distance
    b1 = rv_elevation / (10.0 * math.pi) / 1000.0
    x = a1
    phase = location * math.pi / 2.0
    for _ in range(6):
        x = a1 - b1 * (math.cos(math.pi * x - phase) - math.cos(phase))
    return x * rv_distance


# ----------------------------------------------------------------------
# Ignition probability
# ----------------------------------------------------------------------

class LightningCharge:
    NEGATIVE, POSITIVE, UNKNOWN = 0, 1, 2


class LightningFuel:
    # Ignition fuel bed types of Latham and Schlieter (1989)
    (PONDEROSA_PINE_LITTER, PUNKY_WOOD_CHUNKY, PUNKY_WOOD_DEEP, PUNKY_WOOD_SHALLOW,
     LODGEPOLE_DUFF, DOUGLAS_FIR_DUFF, HIGH_ALTITUDE_MIXED, PEAT_MOSS) = range(8)


def fuel_temperature(air_temp: float, sun_shade: float) -> float:
    """Dead surface fuel temperature (deg F) from air temperature and shading (fraction)."""
    return air_temp + 25.0 - 20.0 * sun_shade


def firebrand_ignition_probability(fuel_temp: float, moisture: float) -> float:
    """Probability of a firebrand starting a fire (Schroeder 1969).

    Args:
        fuel_temp (float): Dead fuel temperature (deg F).
        moisture (float): 1-h dead fuel moisture (fraction).
    """
    temp_c = (fuel_temp - 32.0) * 5.0 / 9.0
    heat_of_ignition = (144.51 - 0.266 * temp_c - 0.00058 * temp_c * temp_c
                        - temp_c * moisture + 18.54 * (1.0 - math.exp(-15.1 * moisture))
                        + 640.0 * moisture)
    x = 0.1 * (400.0 - min(heat_of_ignition, 400.0))
    prob = 0.000048 * x ** 4.3 / 50.0
    return min(max(prob, 0.0), 1.0)


# Ignition probability with continuing current, (positive, negative) per fuel type
_LIGHTNING_EXP = {
    LightningFuel.PONDEROSA_PINE_LITTER: ((0.92, -0.087), (1.04, -0.054)),
    LightningFuel.PUNKY_WOOD_CHUNKY: ((0.44, -0.110), (0.59, -0.094)),
    LightningFuel.PUNKY_WOOD_DEEP: ((0.86, -0.060), (0.90, -0.056)),
    LightningFuel.PEAT_MOSS: ((0.71, -0.070), (0.84, -0.060)),
}


def lightning_ignition_probability(fuel_type: int, duff_depth: float, moisture: float,
                                   charge: int) -> float:
    """Probability of a lightning strike starting a fire (Latham and Schlieter 1989).

    Twenty percent of negative and 90% of positive flashes are assumed to
    carry a continuing current, and 72.3% of strikes of unknown charge
    are negative.

    Args:
        fuel_type (int): LightningFuel bed type.
        duff_depth (float): Duff depth (in), used by the duff fuel types.
        moisture (float): Fuel moisture (fraction), used by the other types.
        charge (int): LightningCharge of the strike.
    """
    fuel_type, charge = int(fuel_type), int(charge)
    depth = min(duff_depth * 2.54, 10.0)
    pct = min(moisture * 100.0, 40.0)

    if fuel_type in _LIGHTNING_EXP:
        (a_pos, b_pos), (a_neg, b_neg) = _LIGHTNING_EXP[fuel_type]
        p_pos = a_pos * math.exp(b_pos * pct)
        p_neg = a_neg * math.exp(b_neg * pct)
    elif fuel_type == LightningFuel.PUNKY_WOOD_SHALLOW:
        p_pos = 0.60 - 0.011 * pct
        p_neg = 0.73 - 0.011 * pct
    elif fuel_type == LightningFuel.LODGEPOLE_DUFF:
        p_pos = 1.0 / (1.0 + math.exp(5.13 - 0.68 * depth))
        p_neg = 1.0 / (1.0 + math.exp(3.84 - 0.60 * depth))
    elif fuel_type == LightningFuel.DOUGLAS_FIR_DUFF:
        p_pos = 1.0 / (1.0 + math.exp(6.69 - 1.39 * depth))
        p_neg = 1.0 / (1.0 + math.exp(5.48 - 1.28 * depth))
    elif fuel_type == LightningFuel.HIGH_ALTITUDE_MIXED:
        p_pos = 0.62 * math.exp(-0.050 * pct)
        p_neg = 0.80 - 0.014 * pct
    else:
        raise ValueError(f"Unknown lightning fuel type {fuel_type}")

    if charge == LightningCharge.NEGATIVE:
        prob = 0.2 * p_neg
    elif charge == LightningCharge.POSITIVE:
        prob = 0.9 * p_pos
    else:
        prob = 0.277 * 0.9 * p_pos + 0.723 * 0.2 * p_neg
    return min(max(prob, 0.0), 1.0)


# ----------------------------------------------------------------------
# Initial attack containment
# ----------------------------------------------------------------------

class ContainStatus:
    CONTAINED, ESCAPED = 0, 1


def ellipse_perimeter_from_area(area: float, lw_ratio: float) -> float:
    """Perimeter (ft) of an ellipse of `area` (acres) and length-to-width ratio."""
    if area < SMIDGEN:
        return 0.0
    length = math.sqrt(4.0 * area * SQFT_PER_ACRE * lw_ratio / math.pi)
    return ellipse_perimeter(length, length / lw_ratio)


def contain_attack(head_rate: float, lw_ratio: float, report_size: float, arrival: float,
                   production: float, resources: float, duration: float) -> Tuple[float, ...]:
    """Initial attack on an elliptical fire by identical line-building resources.

    The fire grows from a point at ignition, so its perimeter grows
    linearly with time. From the attack on, the line held grows at the
    combined production rate; the fire is contained once the line catches
    up with the perimeter. The smallest number of resources (up to
    `resources`) that contains the fire within `duration` is used. An
    escaped fire is reported at the end of `duration` with every resource.

    Args:
        head_rate (float): Spread rate at the head (ft/min).
        lw_ratio (float): Length-to-width ratio.
        report_size (float): Fire size when reported (acres).
        arrival (float): Time from report to attack (min).
        production (float): Line production rate per resource (ft/min).
        resources (float): Number of resources available.
        duration (float): Time each resource can keep building line (min).

    Returns:
        Tuple[float, ...]: Attack size (acres), attack perimeter (ft),
        time from report to containment (min), contained size (acres),
        line built (ft), resources used and ContainStatus.
    """
    # Area and perimeter one minute after ignition
    unit = fire_size(head_rate, lw_ratio, 1.0)
    unit_area, growth = unit[6], unit[7]

    def size_at(t_since_report: float) -> float:
        if unit_area < SMIDGEN:
            return report_size
        elapsed = math.sqrt(report_size / unit_area) + t_since_report
        return unit_area * elapsed * elapsed

    attack_size = size_at(arrival)
    attack_perimeter = ellipse_perimeter_from_area(attack_size, lw_ratio)

    available = max(int(round(resources)), 0)
    for used in range(1, available + 1):
        rate = used * production
        if rate <= growth:
            continue
        t_contain = attack_perimeter / (rate - growth)
        if t_contain <= duration:
            return (attack_size, attack_perimeter, arrival + t_contain,
                    size_at(arrival + t_contain), rate * t_contain, float(used),
                    ContainStatus.CONTAINED)

    return (attack_size, attack_perimeter, arrival + duration, size_at(arrival + duration),
            available * production * duration, float(available), ContainStatus.ESCAPED)


# ----------------------------------------------------------------------
# Weather
# ----------------------------------------------------------------------

def relative_humidity(dry_bulb: float, dew_point: float) -> float:
    """Relative humidity (fraction) from dry bulb and dew point (deg F)."""
    if dew_point >= dry_bulb:
        return 1.0
    return math.exp(-7469.0 / (dew_point + 398.0) + 7469.0 / (dry_bulb + 398.0))


def dew_point_from_wet_bulb(dry_bulb: float, wet_bulb: float, elevation: float) -> float:
    """Dew point (deg F) from dry and wet bulb temperatures (deg F) at an elevation (ft)."""
    if wet_bulb >= dry_bulb:
        return dry_bulb

    db = (dry_bulb - 32.0) * 5.0 / 9.0
    wb = (wet_bulb - 32.0) * 5.0 / 9.0

    if wb < 0.0:
        e2 = 6.1115 * math.exp(22.452 * wb / (272.55 + wb))
    else:
        e2 = 6.1121 * math.exp(17.502 * wb / (240.97 + wb))

    pressure = 1013.0 * math.exp(-0.0000375 * elevation)
    depression = 0.66 * (1.0 + 0.00115 * wb) * (db - wb)
    e3 = max(e2 - depression * pressure / 1000.0, 0.001)

    t3 = -240.97 / (1.0 - 17.502 / math.log(e3 / 6.1121))
    return max(t3 * 9.0 / 5.0 + 32.0, -40.0)


def heat_index(air_temp: float, rh: float) -> float:
    """NWS heat index (deg F) from air temperature (deg F) and humidity (fraction)."""
    at = air_temp
    h = 100.0 * rh
    return (-42.379 + 2.04901523 * at + 10.14333127 * h
            - 0.22475541 * at * h - 6.83783e-03 * at * at
            - 5.481717e-02 * h * h + 1.22874e-03 * at * at * h
            + 8.5282e-04 * at * h * h - 1.99e-06 * at * at * h * h)


def summer_simmer_index(air_temp: float, rh: float) -> float:
    h = 100.0 * rh
    return 1.98 * (air_temp - (0.55 - 0.0055 * h) * (air_temp - 58.0)) - 56.83


def direction_degrees(radians: float) -> float:
    return float(np.degrees(radians)) % 360.0
