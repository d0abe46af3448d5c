#  Copyright 2022 Nicolas Maltais
#
#  Licensed under the Apache License, Version 2.0 (the "License");
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.

# Build steps for a project and the Arduino core library. Each target is only rebuilt
# if it doesn't exist or if one of its prerequisites was modified after it:
#
#   <SRC_DIR>/x.pde --> <BUILD_DIR>/x.cpp --> <BUILD_DIR>/x.o --+
#   <SRC_DIR>/y.c   ------------------------> <BUILD_DIR>/y.o --+--> <PROJECT>.elf --> <PROJECT>.hex
#   <core sources> ---> <LIBARDUINO_DIR>/build/*.o --> libarduino.a --+

from concurrent.futures import ThreadPoolExecutor, wait, FIRST_EXCEPTION
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from ardmake.config import Config
from ardmake.toolchain import Toolchain
from ardmake.utils import BuildError, is_outdated

SOURCE_EXTENSIONS = [".c", ".cpp", ".pde"]
CORE_SOURCE_EXTENSIONS = [".c", ".cpp", ".S"]

LIBARDUINO_NAME = "libarduino.a"

SKETCH_HEADER = "#include <Arduino.h>\n"
SKETCH_FOOTER = 'extern "C" void __cxa_pure_virtual() { while(1); }\n'


@dataclass
class CompileJob:
    src: Path
    obj: Path


class Builder:
    config: Config
    toolchain: Toolchain
    jobs: int
    always_make: bool

    def __init__(self, config: Config, toolchain: Toolchain, jobs: int = 1,
                 always_make: bool = False):
        self.config = config
        self.toolchain = toolchain
        self.jobs = max(1, jobs)
        self.always_make = always_make

    @property
    def library_path(self) -> Path:
        return self.config.libarduino_path / LIBARDUINO_NAME

    @property
    def library_build_path(self) -> Path:
        return self.config.libarduino_path / "build"

    def outdated(self, target: Path, prerequisites: Sequence[Path]) -> bool:
        return self.always_make or is_outdated(target, prerequisites)

    def find_sources(self) -> List[Path]:
        """Find project sources in the source directory. Subdirectories are not searched."""
        src_dir = self.config.src_path
        if not src_dir.is_dir():
            return []
        sources = [p for p in src_dir.iterdir()
                   if p.is_file() and p.suffix in SOURCE_EXTENSIONS]
        # same order as `ls src/*.c`, `ls src/*.cpp`, `ls src/*.pde`
        sources.sort(key=lambda p: (SOURCE_EXTENSIONS.index(p.suffix), p.name))

        stems = {}
        for src in sources:
            if src.stem in stems:
                raise BuildError(f"sources '{stems[src.stem].name}' and '{src.name}' "
                                 f"would both be compiled to {src.stem}.o")
            stems[src.stem] = src
        return sources

    def object_path(self, src: Path) -> Path:
        return self.config.build_path / f"{src.stem}.o"

    def sketch_cpp_path(self, sketch: Path) -> Path:
        return self.config.build_path / f"{sketch.stem}.cpp"

    def convert_sketch(self, sketch: Path) -> Path:
        """Convert a .pde sketch to a C++ file including the Arduino header."""
        cpp = self.sketch_cpp_path(sketch)
        if self.outdated(cpp, [sketch]):
            print(f"Converting {sketch} to {cpp}")
            # copied byte for byte, the sketch encoding is unknown
            content = sketch.read_bytes()
            if content and not content.endswith(b"\n"):
                content += b"\n"
            cpp.write_bytes(SKETCH_HEADER.encode() + content + SKETCH_FOOTER.encode())
        return cpp

    def compile_all(self, jobs: Sequence[CompileJob]) -> None:
        """Run compile jobs, in parallel if more than one job is allowed.
        Stops at the first failure, pending jobs are cancelled."""
        if self.jobs == 1 or len(jobs) <= 1:
            for job in jobs:
                self.toolchain.compile(job.src, job.obj)
            return

        with ThreadPoolExecutor(max_workers=self.jobs) as executor:
            futures = [executor.submit(self.toolchain.compile, job.src, job.obj) for job in jobs]
            _, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in pending:
                future.cancel()
        # raise the first error in submission order
        for future in futures:
            if not future.cancelled() and future.exception() is not None:
                raise future.exception()

    def build_library(self) -> Path:
        """Build libarduino.a from the Arduino core sources."""
        core_dir = self.toolchain.sdk.core_dir
        core_sources = []
        if core_dir.is_dir():
            core_sources = sorted(p for p in core_dir.iterdir()
                                  if p.is_file() and p.suffix in CORE_SOURCE_EXTENSIONS)
        if not core_sources:
            raise BuildError(f"no Arduino core sources found in {core_dir}")

        self.library_build_path.mkdir(parents=True, exist_ok=True)
        objs = []
        jobs = []
        for src in core_sources:
            obj = self.library_build_path / f"{src.name}.o"
            objs.append(obj)
            if self.outdated(obj, [src]):
                jobs.append(CompileJob(src, obj))
        self.compile_all(jobs)

        lib = self.library_path
        if jobs or self.outdated(lib, objs):
            if lib.exists():
                # rebuild the archive from scratch so that removed sources are dropped
                lib.unlink()
            self.toolchain.archive(lib, objs)
        return lib

    def build_objects(self) -> List[Path]:
        sources = self.find_sources()
        if not sources:
            raise BuildError(f"no source files found in {self.config.src_path}")

        build_dir = self.config.build_path
        if not build_dir.exists():
            print(f"Creating {build_dir}")
            build_dir.mkdir(parents=True)

        inc = self.config.inc_paths
        objs = []
        jobs = []
        for src in sources:
            obj = self.object_path(src)
            objs.append(obj)
            if src.suffix == ".pde":
                src = self.convert_sketch(src)
            if self.outdated(obj, [src, *inc]):
                jobs.append(CompileJob(src, obj))
        self.compile_all(jobs)
        return objs

    def build_elf(self) -> Path:
        lib = self.build_library()
        objs = self.build_objects()
        elf = self.config.elf_path
        if self.outdated(elf, [lib, *objs, *self.find_sources(), *self.config.inc_paths]):
            self.toolchain.link(objs, elf, self.config.libarduino_path)
        return elf

    def build(self) -> Path:
        """Build the project HEX file, returns its path."""
        elf = self.build_elf()
        hex_file = self.config.hex_path
        if self.outdated(hex_file, [elf]):
            self.toolchain.strip(elf)
            self.toolchain.make_hex(elf, hex_file)
        return hex_file

    def clean(self, everything: bool = False) -> None:
        """Remove build output. If everything is set, the core library is removed too."""
        def remove(path: Path) -> None:
            if path.is_file():
                path.unlink()
                print(f"removed '{path}'")

        def remove_dir(path: Path) -> None:
            if path.is_dir() and not any(path.iterdir()):
                path.rmdir()
                print(f"removed directory '{path}'")

        remove(self.config.elf_path)
        remove(self.config.hex_path)
        build_dir = self.config.build_path
        if build_dir.is_dir():
            # no clash check, clashing sources can still be cleaned
            src_dir = self.config.src_path
            sketches = [self.sketch_cpp_path(p) for p in sorted(src_dir.glob("*.pde"))
                        if p.is_file()] if src_dir.is_dir() else []
            for path in sorted(build_dir.glob("*.o")) + sketches:
                remove(path)
            remove_dir(build_dir)

        if everything:
            remove(self.library_path)
            if self.library_build_path.is_dir():
                for path in sorted(self.library_build_path.glob("*.o")):
                    remove(path)
                remove_dir(self.library_build_path)
            remove_dir(self.config.libarduino_path)
