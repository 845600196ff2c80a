"""Fuel model definitions for surface fire behavior.

This module defines the Anderson 13 Fire Behavior Fuel Models (FBFMs)
and derives, once per model, the fuel bed intermediates the Rothermel
equations need: size class weights, characteristic surface-area-to-volume
ratio, packing ratios, optimum reaction velocity, propagating flux ratio
and the wind coefficients.

Size classes are indexed 0-2 for dead 1-h, 10-h and 100-h fuels, 3 for
live herbaceous and 4 for live woody fuels.

Classes:
    - Fuel: Base class representing a fuel bed with its Rothermel intermediates.
    - Anderson13: Subclass representing the 13 standard Anderson fuel models.

References:
    - Anderson, H. E. (1982). Aids to Determining Fuel Models for Estimating Fire Behavior.
      USDA Forest Service General Technical Report INT-122.
    - Rothermel, R. C. (1972). A mathematical model for predicting fire spread in
      wildland fuels. USDA Forest Service Research Paper INT-115.
"""
import json
import os

import numpy as np

# tons/acre to lb/ft^2
TPA_TO_LBS_FT2 = 2000.0 / 43560.0

NUM_DEAD = 3
NUM_CLASSES = 5


class Fuel:
    """Represents a fuel bed with physical and combustion properties.

    Args:
        name (str): Name of the fuel model.
        model_num (int): Fuel model number.
        w_0 (np.ndarray): Oven-dry loading per size class (tons/acre).
        s (np.ndarray): Surface-area-to-volume ratio per size class (1/ft).
        fuel_depth (float): Fuel bed depth (ft).
        dead_mx (float): Dead fuel moisture of extinction (fraction).

    Attributes:
        w_0 (np.ndarray): Oven-dry loading per size class (lb/ft^2).
        f_i (np.ndarray): Dead and live category weights.
        f_ij (np.ndarray): Size class weights within each category.
        sav_ratio (float): Characteristic surface-area-to-volume ratio (1/ft).
        rho_b (float): Bulk density of the fuel bed (lb/ft^3).
        beta (float): Packing ratio.
        rat (float): Packing ratio relative to optimum.
        gamma (float): Optimum reaction velocity (1/min).
        flux_ratio (float): Propagating flux ratio.
        C, B, E (float): Wind factor coefficients.
        W (float): Dead-to-live fine fuel loading ratio for live extinction moisture.
    """
    def __init__(self, name: str, model_num: int, w_0: np.ndarray, s: np.ndarray,
                 fuel_depth: float, dead_mx: float):

        self.name = name
        self.model_num = model_num

        self.s_T = 0.0555
        self.s_e = 0.010
        self.rho_p = 32
        self.heat_content = 8000 # btu/lb

        self.w_0 = np.asarray(w_0, dtype=float) * TPA_TO_LBS_FT2 # convert to lbs/ft^2
        self.s = np.asarray(s, dtype=float)
        self.fuel_depth_ft = fuel_depth
        self.dead_mx = dead_mx

        self.set_weights()

        w_n = self.w_0 * (1 - self.s_T)
        self.set_fuel_loading(w_n)

        self.set_bed_properties()
        self.W = self.calc_W()

    @property
    def has_live(self) -> bool:
        return self.f_i[1] > 0

    def set_weights(self):
        # Mean surface area per size class
        a = self.s * self.w_0 / self.rho_p
        a_dead = np.sum(a[:NUM_DEAD])
        a_live = np.sum(a[NUM_DEAD:])
        a_total = a_dead + a_live

        self.f_ij = np.zeros(NUM_CLASSES)
        if a_dead > 0:
            self.f_ij[:NUM_DEAD] = a[:NUM_DEAD] / a_dead
        if a_live > 0:
            self.f_ij[NUM_DEAD:] = a[NUM_DEAD:] / a_live

        self.f_i = np.array([a_dead / a_total, a_live / a_total])
        self.f_dead_arr = self.f_ij[:NUM_DEAD]
        self.f_live_arr = self.f_ij[NUM_DEAD:]

        sigma_dead = np.dot(self.f_dead_arr, self.s[:NUM_DEAD])
        sigma_live = np.dot(self.f_live_arr, self.s[NUM_DEAD:])
        self.sav_ratio = self.f_i[0] * sigma_dead + self.f_i[1] * sigma_live

    def set_fuel_loading(self, w_n):
        self.w_n = w_n
        self.w_n_dead = np.dot(self.f_dead_arr, self.w_n[:NUM_DEAD])
        self.w_n_live = np.dot(self.f_live_arr, self.w_n[NUM_DEAD:])

    def set_bed_properties(self):
        sigma = self.sav_ratio

        self.rho_b = np.sum(self.w_0) / self.fuel_depth_ft
        self.beta = self.rho_b / self.rho_p
        self.beta_op = 3.348 * sigma ** (-0.8189)
        self.rat = self.beta / self.beta_op

        # Optimum reaction velocity
        gamma_max = sigma ** 1.5 / (495 + 0.0594 * sigma ** 1.5)
        a = 133 * sigma ** (-0.7913)
        self.gamma = gamma_max * self.rat ** a * np.exp(a * (1 - self.rat))

        self.flux_ratio = np.exp((0.792 + 0.681 * sigma ** 0.5) * (self.beta + 0.1)) / (192 + 0.2595 * sigma)

        self.C = 7.47 * np.exp(-0.133 * sigma ** 0.55)
        self.B = 0.02526 * sigma ** 0.54
        self.E = 0.715 * np.exp(-3.59e-4 * sigma)

    def calc_W(self):

        w = self.w_0
        s = self.s

        num = 0
        for i in range(NUM_DEAD):
            if s[i] != 0:
                num += w[i] * np.exp(-138/s[i])

        den = 0
        for i in range(NUM_DEAD, NUM_CLASSES):
            if s[i] != 0:
                den += w[i] * np.exp(-500/s[i])

        if den == 0:
            W = np.inf # Live moisture does not apply here

        else:
            W = num/den

        return W


class Anderson13(Fuel):
    _fuel_models = None # class-level cache

    @classmethod
    def load_fuel_models(cls):
        if cls._fuel_models is None:
            json_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "anderson13.json")
            with open(json_path, "r") as f:
                cls._fuel_models = json.load(f)
        return cls._fuel_models

    @classmethod
    def model_numbers(cls):
        return sorted(int(k) for k in cls.load_fuel_models()["names"])

    @classmethod
    def model_names(cls):
        names = cls.load_fuel_models()["names"]
        return [names[str(n)] for n in cls.model_numbers()]

    def __init__(self, model_number: int):
        self.load_fuel_models()

        model_number = int(model_number)

        model_id = str(model_number)
        if model_id not in self._fuel_models["names"]:
            raise ValueError(f"{model_number} is not a valid Anderson 13 model number")

        super().__init__(self._fuel_models["names"][model_id], model_number,
                         np.array(self._fuel_models["w_0"][model_id]),
                         np.array(self._fuel_models["s"][model_id]),
                         self._fuel_models["fuel_bed_depth"][model_id],
                         self._fuel_models["mx_dead"][model_id])


_fuel_cache = {}

def get_fuel(model_number: int) -> Anderson13:
    """Shared Anderson13 instance for a model number."""
    model_number = int(model_number)
    if model_number not in _fuel_cache:
        _fuel_cache[model_number] = Anderson13(model_number)
    return _fuel_cache[model_number]
