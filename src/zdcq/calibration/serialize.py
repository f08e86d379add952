"""Named object collections <-> one flat xarray Dataset (netCDF4 on disk).

Hierarchical names ("step2/hQXA_mean_cent_run") become flat keys with "/"
replaced by ".". Each object contributes:

- data variables ``{key}__{var}`` with dimensions ``{key}__{dim}``
- attributes ``{key}__kind``, ``{key}__name`` and its own ``{key}__{attr}``

``attrs["objects"]`` lists the original names so the collection can be
rebuilt in order.
"""

import logging
from pathlib import Path
from typing import Dict, Union

import xarray as xr

from zdcq.core.histograms import Hist1D, Hist2D
from zdcq.calibration.tables import TABLE_KINDS

logger = logging.getLogger(__name__)

OBJECT_KINDS = dict(TABLE_KINDS)
OBJECT_KINDS.update({Hist1D.kind: Hist1D, Hist2D.kind: Hist2D})

SEPARATOR = "__"


def flat_key(name: str) -> str:
    return name.replace("/", ".")


def collection_to_dataset(objects: Dict[str, object]) -> xr.Dataset:
    """Pack named tables/histograms into one Dataset."""
    data_vars = {}
    attrs = {"objects": ",".join(objects)}

    for name, obj in objects.items():
        key = flat_key(name)
        prefix = key + SEPARATOR
        for var, da in obj.to_variables().items():
            data_vars[prefix + var] = da.rename({dim: prefix + dim for dim in da.dims})
        attrs[prefix + "kind"] = obj.kind
        attrs[prefix + "name"] = name
        for attr, value in obj.attrs().items():
            attrs[prefix + attr] = value

    return xr.Dataset(data_vars, attrs=attrs)


def collection_from_dataset(ds: xr.Dataset) -> Dict[str, object]:
    """Rebuild the named objects written by collection_to_dataset().

    Raises
    ------
    ValueError
        If an object has an unknown kind tag
    """
    listing = ds.attrs.get("objects", "")
    names = [n for n in str(listing).split(",") if n]
    objects = {}

    for name in names:
        key = flat_key(name)
        prefix = key + SEPARATOR
        kind = str(ds.attrs[prefix + "kind"])
        cls = OBJECT_KINDS.get(kind)
        if cls is None:
            raise ValueError(f"Unknown object kind '{kind}' for {name}")

        variables = {}
        for var in ds.data_vars:
            if var.startswith(prefix):
                da = ds[var]
                variables[var[len(prefix):]] = da.rename({dim: dim[len(prefix):] for dim in da.dims})
        attrs = {k[len(prefix):]: v for k, v in ds.attrs.items() if k.startswith(prefix)}

        objects[name] = cls.from_variables(name, variables, attrs)

    return objects


def save_collection(objects: Dict[str, object], path: Union[str, Path]) -> Path:
    """Write a collection as netCDF4."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    ds = collection_to_dataset(objects)
    ds.to_netcdf(path, mode='w', engine='netcdf4', format='NETCDF4')
    logger.debug("Wrote %d objects to %s", len(objects), path)
    return path


def load_collection(path: Union[str, Path]) -> Dict[str, object]:
    """Read a collection written by save_collection()."""
    with xr.open_dataset(path, engine='netcdf4') as ds:
        ds.load()
        return collection_from_dataset(ds)
