"""Coefficient tableaus of the embedded 4(3) Rosenbrock methods.

All six methods share the same four-stage scheme (Hairer & Wanner,
*Solving Ordinary Differential Equations II*, section IV.7) and differ
only in their constants.  A method is selected once per configuration via
:class:`RosenbrockMethod`; :func:`get_tableau` returns the matching
immutable :class:`RosenbrockTableau`.

Stage formulas in terms of the tableau, with ``M = I/(h*GAMMA) - J`` and
``f_t`` the time derivative of the right-hand side:

.. math::

    M k_1 &= f(t, y) + h D_1 f_t \\\\
    M k_2 &= f(t + C_2 h, y + A_{21} k_1) + h D_2 f_t + C_{21} k_1 / h \\\\
    M k_3 &= f(t + C_3 h, y + A_{31} k_1 + A_{32} k_2) + h D_3 f_t
             + (C_{31} k_1 + C_{32} k_2) / h \\\\
    M k_4 &= f(t + C_3 h, y + A_{31} k_1 + A_{32} k_2) + h D_4 f_t
             + (C_{41} k_1 + C_{42} k_2 + C_{43} k_3) / h

The 4th-order solution is ``y + sum(B_i k_i)`` and the embedded error
estimate is ``sum(E_i k_i)``.
"""

from __future__ import annotations

import enum
from typing import NamedTuple

from stiffjax.errors import ConfigurationError


class RosenbrockMethod(enum.IntEnum):
    """The six available coefficient sets.

    Values match the integer ids accepted by
    :class:`~stiffjax.integrators.IntegratorConfig`.

    Attributes:
        SHAMPINE: Method of Shampine (1).
        GRK4A: GRK4A of Kaps-Rentrop (2).
        GRK4T: GRK4T of Kaps-Rentrop (3).
        VELDHUIZEN: Method of van Veldhuizen with gamma = 1/2 (4).
        VELDHUIZEN_D: "D-stable" method of van Veldhuizen (5, default).
        L_STABLE: An L-stable method (6).
    """

    SHAMPINE = 1
    GRK4A = 2
    GRK4T = 3
    VELDHUIZEN = 4
    VELDHUIZEN_D = 5
    L_STABLE = 6


class RosenbrockTableau(NamedTuple):
    """Immutable coefficient record of one Rosenbrock method."""

    A21: float
    A31: float
    A32: float
    C21: float
    C31: float
    C32: float
    C41: float
    C42: float
    C43: float
    B1: float
    B2: float
    B3: float
    B4: float
    E1: float
    E2: float
    E3: float
    E4: float
    GAMMA: float
    C2: float
    C3: float
    D1: float
    D2: float
    D3: float
    D4: float


_TABLEAUS: dict[RosenbrockMethod, RosenbrockTableau] = {
    RosenbrockMethod.SHAMPINE: RosenbrockTableau(
        A21=2.0,
        A31=48.0 / 25.0,
        A32=6.0 / 25.0,
        C21=-8.0,
        C31=372.0 / 25.0,
        C32=12.0 / 5.0,
        C41=-112.0 / 125.0,
        C42=-54.0 / 125.0,
        C43=-2.0 / 5.0,
        B1=19.0 / 9.0,
        B2=1.0 / 2.0,
        B3=25.0 / 108.0,
        B4=125.0 / 108.0,
        E1=17.0 / 54.0,
        E2=7.0 / 36.0,
        E3=0.0,
        E4=125.0 / 108.0,
        GAMMA=0.5,
        C2=1.0,
        C3=0.6,
        D1=0.5,
        D2=-1.5,
        D3=2.42,
        D4=0.116,
    ),
    RosenbrockMethod.GRK4A: RosenbrockTableau(
        A21=0.1108860759493671e01,
        A31=0.2377085261983360e01,
        A32=0.1850114988899692e00,
        C21=-0.4920188402397641e01,
        C31=0.1055588686048583e01,
        C32=0.3351817267668938e01,
        C41=0.3846869007049313e01,
        C42=0.3427109241268180e01,
        C43=-0.2162408848753263e01,
        B1=0.1845683240405840e01,
        B2=0.1369796894360503e00,
        B3=0.7129097783291559e00,
        B4=0.6329113924050632e00,
        E1=0.4831870177201765e-01,
        E2=-0.6471108651049505e00,
        E3=0.2186876660500240e00,
        E4=-0.6329113924050632e00,
        GAMMA=0.3950000000000000e00,
        C2=0.4380000000000000e00,
        C3=0.8700000000000000e00,
        D1=0.3950000000000000e00,
        D2=-0.3726723954840920e00,
        D3=0.6629196544571492e-01,
        D4=0.4340946962568634e00,
    ),
    RosenbrockMethod.GRK4T: RosenbrockTableau(
        A21=0.2000000000000000e01,
        A31=0.4524708207373116e01,
        A32=0.4163528788597648e01,
        C21=-0.5071675338776316e01,
        C31=0.6020152728650786e01,
        C32=0.1597506846727117e00,
        C41=-0.1856343618686113e01,
        C42=-0.8505380858179826e01,
        C43=-0.2084075136023187e01,
        B1=0.3957503746640777e01,
        B2=0.4624892388363313e01,
        B3=0.6174772638750108e00,
        B4=0.1282612945269037e01,
        E1=0.2302155402932996e01,
        E2=0.3073634485392623e01,
        E3=-0.8732808018045032e00,
        E4=-0.1282612945269037e01,
        GAMMA=0.2310000000000000e00,
        C2=0.4620000000000000e00,
        C3=0.8802083333333334e00,
        D1=0.2310000000000000e00,
        D2=-0.3962966775244303e-01,
        D3=0.5507789395789127e00,
        D4=-0.5535098457052764e-01,
    ),
    RosenbrockMethod.VELDHUIZEN: RosenbrockTableau(
        A21=0.2000000000000000e01,
        A31=0.1750000000000000e01,
        A32=0.2500000000000000e00,
        C21=-0.8000000000000000e01,
        C31=-0.8000000000000000e01,
        C32=-0.1000000000000000e01,
        C41=0.5000000000000000e00,
        C42=-0.5000000000000000e00,
        C43=0.2000000000000000e01,
        B1=0.1333333333333333e01,
        B2=0.6666666666666667e00,
        B3=-0.1333333333333333e01,
        B4=0.1333333333333333e01,
        E1=-0.3333333333333333e00,
        E2=-0.3333333333333333e00,
        E3=-0.0000000000000000e00,
        E4=-0.1333333333333333e01,
        GAMMA=0.5000000000000000e00,
        C2=0.1000000000000000e01,
        C3=0.5000000000000000e00,
        D1=0.5000000000000000e00,
        D2=-0.1500000000000000e01,
        D3=-0.7500000000000000e00,
        D4=0.2500000000000000e00,
    ),
    RosenbrockMethod.VELDHUIZEN_D: RosenbrockTableau(
        A21=0.2000000000000000e01,
        A31=0.4812234362695436e01,
        A32=0.4578146956747842e01,
        C21=-0.5333333333333331e01,
        C31=0.6100529678848254e01,
        C32=0.1804736797378427e01,
        C41=-0.2540515456634749e01,
        C42=-0.9443746328915205e01,
        C43=-0.1988471753215993e01,
        B1=0.4289339254654537e01,
        B2=0.5036098482851414e01,
        B3=0.6085736420673917e00,
        B4=0.1355958941201148e01,
        E1=0.2175672787531755e01,
        E2=0.2950911222575741e01,
        E3=-0.7859744544887430e00,
        E4=-0.1355958941201148e01,
        GAMMA=0.2257081148225682e00,
        C2=0.4514162296451364e00,
        C3=0.8755928946018455e00,
        D1=0.2257081148225682e00,
        D2=-0.4599403502680582e-01,
        D3=0.5177590504944076e00,
        D4=-0.3805623938054428e-01,
    ),
    RosenbrockMethod.L_STABLE: RosenbrockTableau(
        A21=0.2000000000000000e01,
        A31=0.1867943637803922e01,
        A32=0.2344449711399156e00,
        C21=-0.7137615036412310e01,
        C31=0.2580708087951457e01,
        C32=0.6515950076447975e00,
        C41=-0.2137148994382534e01,
        C42=-0.3214669691237626e00,
        C43=-0.6949742501781779e00,
        B1=0.2255570073418735e01,
        B2=0.2870493262186792e00,
        B3=0.4353179431840180e00,
        B4=0.1093502252409163e01,
        E1=-0.2815431932141155e00,
        E2=-0.7276199124938920e-01,
        E3=-0.1082196201495311e00,
        E4=-0.1093502252409163e01,
        GAMMA=0.5728200000000000e00,
        C2=0.1145640000000000e01,
        C3=0.6552168638155900e00,
        D1=0.5728200000000000e00,
        D2=-0.1769193891319233e01,
        D3=0.7592633437920482e00,
        D4=-0.1049021087100450e00,
    ),
}


def resolve_method(method: int | RosenbrockMethod) -> RosenbrockMethod:
    """Convert an integer id or enum member to a :class:`RosenbrockMethod`.

    Args:
        method: Method id in ``1..6`` or a :class:`RosenbrockMethod`.

    Returns:
        RosenbrockMethod: The matching enum member.

    Raises:
        ConfigurationError: If *method* does not name a known method.
    """
    if isinstance(method, bool):
        raise ConfigurationError(f"Unknown Rosenbrock method id {method!r}")
    try:
        return RosenbrockMethod(method)
    except ValueError:
        raise ConfigurationError(
            f"Unknown Rosenbrock method id {method!r}, must be one of "
            f"{[m.value for m in RosenbrockMethod]}"
        ) from None


def get_tableau(method: int | RosenbrockMethod) -> RosenbrockTableau:
    """Look up the coefficient tableau of a Rosenbrock method.

    Args:
        method: Method id in ``1..6`` or a :class:`RosenbrockMethod`.

    Returns:
        RosenbrockTableau: The immutable coefficient record.

    Raises:
        ConfigurationError: If *method* does not name a known method.

    Examples:
        ```python
        from stiffjax.integrators import RosenbrockMethod, get_tableau
        tab = get_tableau(RosenbrockMethod.L_STABLE)
        tab.GAMMA
        ```
    """
    return _TABLEAUS[resolve_method(method)]
