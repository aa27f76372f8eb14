#!/usr/bin/env python3
"""
USD Writer Module
Writes the export hierarchy to a USD stage.

- Every context becomes a UsdGeom.Xform carrying its local matrix
- Mesh data becomes a UsdGeom.Mesh below its Xform
- Hair becomes UsdGeom.BasisCurves, particles become UsdGeom.Points
- Instances become internal references to the data of their original
- Data shared by several objects is written once and referenced elsewhere

Each write() adds a time sample at the time passed to begin_pass(), so
iterating once per frame produces an animated stage.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..core.scene_objects import ObjectKind
from .base_writer import AbstractHierarchyWriter, WriterFactory, WriterKind

if TYPE_CHECKING:
    from ..core.context import HierarchyContext


class USDTransformWriter(AbstractHierarchyWriter):
    """Defines an Xform prim and animates its local transform"""

    kind = WriterKind.TRANSFORM

    def __init__(self, factory: 'USDWriterFactory', usd_path: str):
        self.factory = factory
        self.usd_path = usd_path
        self.xform = factory.UsdGeom.Xform.Define(factory.stage, usd_path)
        self.transform_op = self.xform.AddTransformOp()
        self.instance_of = None
        self.reference_path: Optional[str] = None

    def write(self, context: 'HierarchyContext'):
        self.transform_op.Set(self.factory.to_gf_matrix(context.local_matrix()),
                              time=self.factory.time_code)
        if context.is_instance():
            self.instance_of = context.object

    def _add_data_reference(self, obj):
        """Reference the original's data prim instead of writing our own

        The original may be written after its instances, so this waits until
        every data writer exists.
        """
        data_path = self.factory.data_prim_paths.get(obj)
        if data_path is None:
            # The original's data was never written (unsupported kind)
            return
        data_name = data_path.rsplit(self.factory.path_separator, 1)[-1]
        prim = self.factory.stage.DefinePrim(self.factory.path_concatenate(self.usd_path, data_name))
        prim.GetReferences().AddInternalReference(self.factory.Sdf.Path(data_path))
        self.reference_path = data_path

    def release(self):
        if self.instance_of is not None and self.reference_path is None:
            self._add_data_reference(self.instance_of)
        self.instance_of = None
        self.xform = None
        self.transform_op = None


class USDMeshWriter(AbstractHierarchyWriter):
    """Writes static mesh topology once"""

    kind = WriterKind.DATA

    def __init__(self, factory: 'USDWriterFactory', usd_path: str):
        self.factory = factory
        self.usd_path = usd_path
        self.mesh = factory.UsdGeom.Mesh.Define(factory.stage, usd_path)
        self.topology_written = False

    def write(self, context: 'HierarchyContext'):
        if self.topology_written:
            return
        if context.is_instance():
            # Shared data: reference the first export instead of copying it
            self.mesh.GetPrim().GetReferences().AddInternalReference(
                self.factory.Sdf.Path(context.original_export_path))
            self.topology_written = True
            return

        geometry = getattr(context.object_data, 'geometry', None)
        if geometry is None:
            return

        Vt = self.factory.Vt
        self.mesh.GetPointsAttr().Set(Vt.Vec3fArray([self.factory.make_vec3f(p) for p in geometry.positions]))
        self.mesh.GetFaceVertexIndicesAttr().Set(Vt.IntArray([int(i) for i in geometry.indices]))
        self.mesh.GetFaceVertexCountsAttr().Set(Vt.IntArray([int(c) for c in geometry.counts]))
        self.topology_written = True

    def release(self):
        self.mesh = None


class USDHairWriter(AbstractHierarchyWriter):
    """Writes hair strands as linear BasisCurves"""

    kind = WriterKind.HAIR

    def __init__(self, factory: 'USDWriterFactory', usd_path: str):
        self.factory = factory
        self.usd_path = usd_path
        self.curves = factory.UsdGeom.BasisCurves.Define(factory.stage, usd_path)
        self.curves.GetTypeAttr().Set(factory.UsdGeom.Tokens.linear)

    def write(self, context: 'HierarchyContext'):
        psys = context.particle_system
        Vt = self.factory.Vt
        time_code = self.factory.time_code
        self.curves.GetPointsAttr().Set(
            Vt.Vec3fArray([self.factory.make_vec3f(p) for p in psys.points]), time=time_code)
        self.curves.GetCurveVertexCountsAttr().Set(
            Vt.IntArray([int(c) for c in psys.strand_counts]), time=time_code)

    def release(self):
        self.curves = None


class USDPointsWriter(AbstractHierarchyWriter):
    """Writes emitted particles as a Points prim"""

    kind = WriterKind.PARTICLE

    def __init__(self, factory: 'USDWriterFactory', usd_path: str):
        self.factory = factory
        self.usd_path = usd_path
        self.points = factory.UsdGeom.Points.Define(factory.stage, usd_path)

    def write(self, context: 'HierarchyContext'):
        psys = context.particle_system
        self.points.GetPointsAttr().Set(
            self.factory.Vt.Vec3fArray([self.factory.make_vec3f(p) for p in psys.points]),
            time=self.factory.time_code)

    def release(self):
        self.points = None


class USDWriterFactory(WriterFactory):
    """Writer factory targeting a USD stage

    USD uses Y-up like most DCC interchange, and row vectors: matrices are
    transposed on the way in.
    """

    def __init__(self, stage=None, progress_callback=None):
        """Initialize factory

        Args:
            stage: Usd.Stage to write to; an in-memory stage if omitted
            progress_callback: Optional function to call for progress updates
        """
        super().__init__(progress_callback)

        # Lazy import USD - only import when actually creating a factory
        try:
            from pxr import Gf, Sdf, Usd, UsdGeom, Vt
            self.Gf = Gf
            self.Sdf = Sdf
            self.Usd = Usd
            self.UsdGeom = UsdGeom
            self.Vt = Vt
        except ImportError as e:
            raise ImportError(
                f"USD Python library (pxr) not found: {e}\n"
                "Install with: pip install usd-core"
            )

        self.stage = stage if stage is not None else Usd.Stage.CreateInMemory()
        self.UsdGeom.SetStageUpAxis(self.stage, self.UsdGeom.Tokens.y)
        self.time_code = Usd.TimeCode.Default()
        self.released_count = 0
        # Object -> path of the mesh prim holding its data, for instances
        self.data_prim_paths = {}

    @classmethod
    def create_new(cls, usd_file, progress_callback=None) -> 'USDWriterFactory':
        """Create a factory writing to a new USD file on disk

        Args:
            usd_file: Output file (.usda, .usdc or .usd)
        """
        from pxr import Usd

        path = Path(usd_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        return cls(Usd.Stage.CreateNew(str(path)), progress_callback)

    # === WriterFactory ===

    def begin_pass(self, export_time: float):
        self.time_code = float(export_time)
        if not self.stage.HasAuthoredTimeCodeRange():
            self.stage.SetStartTimeCode(self.time_code)
            self.stage.SetEndTimeCode(self.time_code)
        else:
            self.stage.SetStartTimeCode(min(self.stage.GetStartTimeCode(), self.time_code))
            self.stage.SetEndTimeCode(max(self.stage.GetEndTimeCode(), self.time_code))

    def create_transform_writer(self, context: 'HierarchyContext'):
        return USDTransformWriter(self, context.export_path)

    def create_data_writer(self, context: 'HierarchyContext'):
        data = context.object_data
        if data is None or getattr(data, 'kind', None) is not ObjectKind.MESH:
            # Only meshes are supported so far
            return None
        if not context.is_instance():
            self.data_prim_paths.setdefault(context.object, context.export_path)
        return USDMeshWriter(self, context.export_path)

    def create_hair_writer(self, context: 'HierarchyContext'):
        return USDHairWriter(self, context.export_path)

    def create_particle_writer(self, context: 'HierarchyContext'):
        return USDPointsWriter(self, context.export_path)

    def release_writer(self, writer):
        writer.release()
        self.released_count += 1

    def make_valid_name(self, name: str) -> str:
        """Sanitize name for USD prim path

        Args:
            name: Original name

        Returns:
            str: Sanitized name safe for USD paths
        """
        # Replace spaces and special characters
        sanitized = name.replace(' ', '_').replace('-', '_').replace('.', '_')
        # Remove other problematic characters
        sanitized = ''.join(c for c in sanitized if c.isalnum() or c == '_')
        # Ensure it doesn't start with a number
        if sanitized and sanitized[0].isdigit():
            sanitized = '_' + sanitized
        return sanitized or '_'

    # === HELPERS ===

    def to_gf_matrix(self, matrix):
        """Convert a column-vector numpy matrix to a row-vector Gf.Matrix4d"""
        return self.Gf.Matrix4d(*matrix.T.flatten().tolist())

    def make_vec3f(self, value):
        return self.Gf.Vec3f(float(value[0]), float(value[1]), float(value[2]))

    def save(self):
        """Write the stage to its root layer"""
        self.stage.Save()
        self.log(f"✓ USD stage saved: {self.stage.GetRootLayer().identifier}")
