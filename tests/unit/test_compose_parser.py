import yaml
from vpsstack.PARSERS.compose_parser import ComposeParser
from vpsstack.CONVERTERS.to_compose import ComposeConverter
from vpsstack.STACKS.postgres import PostgresRecipe

def test_parse(tmp_path):
    compose_content = {
        'version': '3.8',
        'services': {
            'web': {
                'image': 'nginx:latest',
                'ports': ['8080:80'],
                'environment': {
                    'DEBUG': 'true'
                },
                'networks': ['main-proxy'],
                'deploy': {
                    'labels': {'traefik.enable': 'true'},
                    'resources': {'limits': {'cpus': '0.5', 'memory': '512M'}},
                },
            },
            'db': {
                'image': 'postgres:13',
                'environment': ['POSTGRES_DB=app'],
                'volumes': ['db_data:/var/lib/postgresql/data'],
                'secrets': [{'source': 'db_password'}],
            }
        },
        'volumes': {
            'db_data': {'external': True}
        },
        'secrets': {
            'db_password': {'external': True}
        },
    }

    compose_file = tmp_path / "web.yml"
    with open(compose_file, 'w') as f:
        yaml.dump(compose_content, f)

    parser = ComposeParser()
    stack = parser.parse(str(compose_file))

    assert stack.name == 'web'
    assert 'web' in stack.services
    assert 'db' in stack.services
    web = stack.services['web']
    assert web.image == 'nginx:latest'
    assert web.ports[0].published == 8080
    assert web.ports[0].target == 80
    assert web.environment['DEBUG'] == 'true'
    assert web.networks == ['main-proxy']
    assert web.deploy.labels == ['traefik.enable=true']
    assert web.deploy.resources.memory == '512M'

    db = stack.services['db']
    assert db.environment == {'POSTGRES_DB': 'app'}
    assert db.volumes == ['db_data:/var/lib/postgresql/data']
    assert db.secrets == ['db_password']
    assert stack.volumes == ['db_data']
    assert stack.secrets == ['db_password']

def test_parse_generated_file(tmp_path):
    recipe = PostgresRecipe()
    original = recipe.build({'postgres_password': 'x'})
    path = ComposeConverter(str(tmp_path)).convert(original)

    stack = ComposeParser().parse(path)

    assert stack.to_compose() == original.to_compose()

def test_parse_rejects_non_mapping():
    import pytest
    with pytest.raises(ValueError):
        ComposeParser().parse_from_string("- just\n- a list\n")
