from unittest import TestCase

from fakes import CENTRAL, FakeTransport, pom_xml

from artifact_resolver.cache import InMemoryLocalRepository
from artifact_resolver.descriptor import InMemoryDescriptorReader, PomDescriptorReader, parse_pom_dependencies
from artifact_resolver.errors import FetchError
from artifact_resolver.index import RepositoryIndex
from artifact_resolver.materializer import ArtifactMaterializer
from artifact_resolver.models import Coordinate, Dependency, Exclusion, Scope
from artifact_resolver.repository import RemoteRepository, artifact_path

POM = b"""<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>org.example</groupId>
  <artifactId>app</artifactId>
  <version>1.0</version>
  <dependencyManagement>
    <dependencies>
      <dependency><groupId>managed</groupId><artifactId>only</artifactId><version>9</version></dependency>
    </dependencies>
  </dependencyManagement>
  <dependencies>
    <dependency>
      <groupId>org.apache.commons</groupId>
      <artifactId>commons-lang3</artifactId>
      <version>[3.0,4.0)</version>
      <exclusions>
        <exclusion><groupId>org.slf4j</groupId><artifactId>*</artifactId></exclusion>
      </exclusions>
    </dependency>
    <dependency>
      <groupId>junit</groupId>
      <artifactId>junit</artifactId>
      <version>4.13.2</version>
      <scope>test</scope>
    </dependency>
    <dependency>
      <groupId>org.example</groupId>
      <artifactId>shared</artifactId>
      <type>test-jar</type>
      <optional>true</optional>
    </dependency>
    <dependency>
      <groupId>com.sun</groupId>
      <artifactId>tools</artifactId>
      <version>1.8</version>
      <scope>system</scope>
      <systemPath>/opt/jdk/lib/tools.jar</systemPath>
    </dependency>
    <dependency>
      <artifactId>no-group</artifactId>
    </dependency>
  </dependencies>
</project>
"""


class TestPomParsing(TestCase):
    def test_dependencies(self) -> None:
        lang, junit, shared, tools = parse_pom_dependencies(POM)
        self.assertEqual(Coordinate("org.apache.commons", "commons-lang3", "[3.0,4.0)"), lang.coordinate)
        self.assertIsNone(lang.scope)
        self.assertIsNone(lang.optional)
        self.assertEqual(frozenset({Exclusion("org.slf4j", "*")}), lang.exclusions)
        self.assertEqual(Scope.test, junit.scope)
        self.assertEqual(Coordinate("org.example", "shared", "", extension="jar", classifier="tests"), shared.coordinate)
        assert shared.is_optional
        self.assertEqual(Scope.system, tools.scope)
        self.assertEqual("/opt/jdk/lib/tools.jar", tools.system_path)

    def test_placeholders_are_kept(self) -> None:
        (dep,) = parse_pom_dependencies(
            pom_xml("<dependency><groupId>g</groupId><artifactId>a</artifactId><version>${a.version}</version></dependency>")
        )
        self.assertEqual("${a.version}", dep.coordinate.version)

    def test_no_dependencies(self) -> None:
        self.assertEqual([], parse_pom_dependencies(b"<project/>"))

    def test_malformed(self) -> None:
        with self.assertRaises(ValueError):
            parse_pom_dependencies(b"<project>")


class TestPomDescriptorReader(TestCase):
    def setUp(self) -> None:
        self.transport = FakeTransport()
        self.index = RepositoryIndex([CENTRAL], self.transport, InMemoryLocalRepository())
        self.app = Coordinate.from_string("org.example:app:1.0")

    def test_reads_pom(self) -> None:
        self.transport.publish(CENTRAL, self.app.with_extension("pom"), POM)
        deps = PomDescriptorReader(self.index).get_declared_dependencies(self.app)
        self.assertEqual(4, len(deps))

    def test_extra_repositories(self) -> None:
        extra = RemoteRepository.from_url("extra", "https://extra.example.com/repo")
        self.transport.publish(extra, self.app.with_extension("pom"), POM)
        reader = PomDescriptorReader(self.index)
        with self.assertRaises(FetchError):
            reader.get_declared_dependencies(self.app)
        self.assertEqual(4, len(reader.with_repositories([extra]).get_declared_dependencies(self.app)))
        self.assertIs(reader, reader.with_repositories([]))

    def test_reads_through_materializer(self) -> None:
        pom = self.app.with_extension("pom")
        extra = RemoteRepository.from_url("extra", "https://extra.example.com/repo")
        self.transport.publish(extra, pom, POM)
        materializer = ArtifactMaterializer(self.index)
        try:
            reader = PomDescriptorReader(self.index, materializer=materializer).with_repositories([extra])
            self.assertIs(materializer, reader.materializer)
            self.assertEqual(4, len(reader.get_declared_dependencies(self.app)))
            self.assertEqual("extra", materializer.cached(pom).repository)
            self.assertEqual(4, len(reader.get_declared_dependencies(self.app)))
            self.assertEqual(1, self.transport.count(artifact_path(pom)))
        finally:
            materializer.close()

    def test_malformed_pom(self) -> None:
        self.transport.publish(CENTRAL, self.app.with_extension("pom"), b"<project>")
        with self.assertRaises(FetchError):
            PomDescriptorReader(self.index).get_declared_dependencies(self.app)


class TestInMemoryDescriptorReader(TestCase):
    def test_lookup(self) -> None:
        dep = Dependency.from_string("g:b:1")
        reader = InMemoryDescriptorReader({"g:a:1": [dep]})
        self.assertEqual((dep,), tuple(reader.get_declared_dependencies(Coordinate.from_string("g:a:1"))))
        self.assertEqual((), tuple(reader.get_declared_dependencies(Coordinate.from_string("g:a:2"))))
        with self.assertRaises(FetchError):
            InMemoryDescriptorReader(strict=True).get_declared_dependencies(Coordinate.from_string("g:a:1"))
