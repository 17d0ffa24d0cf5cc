"""
Isotope masses as printed in the SPECTRO principal geometry block, mapped to
atomic numbers. Keys are the exact strings SPECTRO writes (seven decimals).
"""
from types import MappingProxyType

ISOTOPE_MASSES = MappingProxyType(
    {
        "1.0078250": 1,  # H
        "2.0141018": 1,  # D
        "3.0160493": 1,  # T
        "3.0160293": 2,  # He-3
        "4.0026032": 2,  # He
        "6.0151223": 3,  # Li-6
        "7.0160040": 3,  # Li
        "9.0121822": 4,  # Be
        "10.0129370": 5,  # B-10
        "11.0093055": 5,  # B
        "12.0000000": 6,  # C
        "13.0033548": 6,  # C-13
        "14.0030740": 7,  # N
        "15.0001089": 7,  # N-15
        "15.9949146": 8,  # O
        "16.9991315": 8,  # O-17
        "17.9991604": 8,  # O-18
        "18.9984032": 9,  # F
        "19.9924402": 10,  # Ne
        "22.9897693": 11,  # Na
        "23.9850417": 12,  # Mg
        "26.9815386": 13,  # Al
        "27.9769265": 14,  # Si
        "28.9764947": 14,  # Si-29
        "30.9737615": 15,  # P
        "31.9720707": 16,  # S
        "33.9678669": 16,  # S-34
        "34.9688527": 17,  # Cl
        "36.9659026": 17,  # Cl-37
        "39.9623831": 18,  # Ar
    }
)


def atomic_number(mass: str) -> int:
    """Atomic number for a printed isotope mass. Raises KeyError if unknown."""
    return ISOTOPE_MASSES[mass.strip()]
